"""
Quote portal core.

Quotation lifecycle, pricing, signed file access and payment reconciliation
for the PCB / assembly quotation portal. Page rendering lives elsewhere; this
package is invoked from request handlers (see ``quoteportal.api.main``).
"""

__version__ = "1.0.0"

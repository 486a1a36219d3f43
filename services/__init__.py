"""
Services layer for Digitale Kleiderkammer.

File-format services (Excel, PDF) that support the operations layer.
"""

from .excel_reader import ExcelReader, write_inventory_sheet
from .pdf_service import PDFService, create_pdf_service

__all__ = [
    # Excel
    "ExcelReader",
    "write_inventory_sheet",
    # PDF Service
    "PDFService",
    "create_pdf_service",
]

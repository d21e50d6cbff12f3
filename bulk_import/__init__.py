"""Spreadsheet bulk import of CRM parties and products."""

__version__ = "0.1.0"

"""Workbook reading (pandas + openpyxl)."""

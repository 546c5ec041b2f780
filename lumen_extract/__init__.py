"""Lumen Extract.

A document processing pipeline combining OpenCV image enhancement,
Tesseract recognition, and rule-based field extraction to pull structured
data out of licence cards, invoices, passports, and labeled forms.
"""

"""OCR package — Tesseract adapter and geometry index."""

"""
Infrastructure layer package.

Contains I/O implementations: SQLite record store, HTTP sync transport,
image resolution, the PDF/XLSX/CSV exporters, config loading and
logging setup.
"""

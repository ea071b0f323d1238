"""
SiteDiary - Offline-first site diary record store and export engine.

Keeps daily construction site diary entries in a local SQLite store
until a remote endpoint acknowledges them, and exports entries as
printable PDF documents, XLSX workbooks and CSV text.

Usage:
    # CLI
    sitediary add entry.json
    sitediary export --all-records -f all

    # Programmatic
    from sitediary.application import Container

    with Container() as container:
        container.store.put(record)
        result = container.export_coordinator.export_batch_sync([record], ["all"])
"""

__version__ = "0.1.0"

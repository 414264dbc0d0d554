"""GUI adapter layer.

This package provides thin Qt-shaped adapters over the configuration engine.

Notes
-----
Adapters exist to:
- keep GUI code free of persistence and file-system details,
- keep engine calls off the UI thread,
- translate engine domain errors into signals the UI can display.
"""

# Routes package init
"""
NoteCraft Backend: API Routes Package
=======================================

Route Inventory:
    - ingest.py:  POST   /api/ingest          (merge uploaded files into note content)
    - render.py:  POST   /api/render          (markup preview)
    - files.py:   POST   /api/files/upload    (upload primitive)
                  POST   /api/files/extract   (extraction primitive)
                  GET    /api/files/{path}    (serve stored originals)
    - notes.py:   GET    /api/notes           (list / search)
                  POST   /api/notes           (create)
                  GET    /api/notes/{id}      (detail with rendered HTML)
                  DELETE /api/notes?id=       (delete)
    - health.py:  GET    /health

Routes stay thin: read the request, call a service, shape the response.
Errors are raised as NoteCraftError subclasses and mapped to HTTP in main.py.
"""

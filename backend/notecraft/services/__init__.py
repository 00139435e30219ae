# Services package init
"""
NoteCraft Backend: Services Layer
===================================

Service Inventory:
    - classifier:          text-like vs binary-like decision
    - ingestion:           IngestionPipeline, notification sinks, content merging
    - markup:              minimal markdown-to-HTML renderer
    - extraction_base:     collaborator and provider interfaces
    - file_service:        upload primitive (validation, local storage, serving)
    - gemini_service:      Gemini text extraction with retry + circuit breaker
    - extraction_service:  store then extract
    - collaborators:       in-process LocalExtractor / LocalUploader
    - remote:              HTTP RemoteExtractor / RemoteUploader
    - note_service:        owner-scoped note CRUD and search

Services never touch HTTP objects, so the pipeline and renderer run the same
way from routes, tests and client tooling.
"""

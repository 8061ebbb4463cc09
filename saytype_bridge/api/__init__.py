"""
REST API for the SayType bridge.

Provides a FastAPI application serving:
- Status endpoint (GET /api/status)
- Transcription endpoint (POST /api/transcribe)
"""

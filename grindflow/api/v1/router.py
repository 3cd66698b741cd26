from fastapi import APIRouter

from grindflow.api.v1.endpoints import analyze, documents, public_library, quiz, studyflow, text, upload

# Create API router
api_router = APIRouter()

# Include routers
api_router.include_router(analyze.router, tags=["Analysis"])
api_router.include_router(quiz.router, tags=["Quiz"])
api_router.include_router(studyflow.router, tags=["Study Flow"])
api_router.include_router(documents.router, prefix="/documents", tags=["Documents"])
api_router.include_router(upload.router, prefix="/upload", tags=["Documents"])
api_router.include_router(text.router, prefix="/text", tags=["Documents"])
api_router.include_router(public_library.router, prefix="/public-library", tags=["Public Library"])

__all__ = ["api_router"]

from fastapi import APIRouter

from studio.api.v1.endpoints import (
    auth,
    books,
    chapters,
    characters,
    exports,
    imports,
    shell,
    terms,
    timeline,
)

api_router = APIRouter()

api_router.include_router(auth.router, prefix="/auth", tags=["auth"])
api_router.include_router(books.router, prefix="/books", tags=["books"])
api_router.include_router(chapters.router, prefix="/books", tags=["chapters"])
api_router.include_router(characters.router, prefix="/books", tags=["characters"])
api_router.include_router(terms.router, prefix="/books", tags=["terms"])
api_router.include_router(timeline.router, prefix="/books", tags=["timeline"])
api_router.include_router(imports.router, prefix="/imports", tags=["imports"])
api_router.include_router(exports.router, prefix="/exports", tags=["exports"])
api_router.include_router(shell.router, prefix="/studio", tags=["studio"])

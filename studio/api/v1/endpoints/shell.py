"""
Studio shell endpoints.

Navigation swaps the route's fragment into the content region and returns
the rendered markup together with the tab strip and pending notices.
"""

from dataclasses import asdict

from fastapi import APIRouter, Depends, HTTPException, status

from studio.api import deps
from studio.schemas.studio import (
    ChapterEdit,
    EditorSettingsUpdate,
    NoticeResponse,
    StudioState,
    TabResponse,
)
from studio.session import StudioSession

router = APIRouter()

CATALOG_ROUTES = ("characters", "terms", "timeline")


async def module_for(studio: StudioSession, route: str):
    """The route's view, or 503 when it failed to initialize."""
    view = await studio.view(route)
    if view is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=f"The {route} tab is not available",
        )
    return view


async def state_response(studio: StudioSession) -> StudioState:
    # Let async bus handlers finish before rendering
    await studio.bus.drain()
    view = studio.current_view
    notices = view.pop_notices() if view is not None else []
    return StudioState(
        route=studio.router.current_route,
        tabs=[TabResponse(**asdict(tab)) for tab in studio.router.tabs],
        content=studio.content.html,
        notices=[NoticeResponse(level=n.level, message=n.message) for n in notices],
    )


@router.get("/state", response_model=StudioState)
async def get_state(studio: StudioSession = Depends(deps.get_studio)):
    return await state_response(studio)


@router.post("/navigate/{route}", response_model=StudioState)
async def navigate(route: str, studio: StudioSession = Depends(deps.get_studio)):
    """Switch tabs."""
    if not await studio.router.navigate_to(route):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"Route '{route}' not found")
    return await state_response(studio)


@router.post("/reload/{route}", response_model=StudioState)
async def reload(route: str, studio: StudioSession = Depends(deps.get_studio)):
    """Switch tabs with a fresh module instance."""
    if not await studio.router.reload(route):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"Route '{route}' not found")
    return await state_response(studio)


@router.post("/editor/chapters/{chapter_id}", response_model=StudioState)
async def open_chapter(chapter_id: str, studio: StudioSession = Depends(deps.get_studio)):
    """Open a chapter in the editor, saving the one being left."""
    editor = await module_for(studio, "editor")
    await editor.select_chapter(chapter_id)
    return await state_response(studio)


@router.patch("/editor/chapter", response_model=StudioState)
async def edit_chapter(edit: ChapterEdit, studio: StudioSession = Depends(deps.get_studio)):
    """Apply edits locally; auto-save writes them after the debounce delay."""
    editor = await module_for(studio, "editor")
    editor.edit(**edit.model_dump(exclude_none=True))
    return await state_response(studio)


@router.post("/editor/save", response_model=StudioState)
async def save_chapter(studio: StudioSession = Depends(deps.get_studio)):
    editor = await module_for(studio, "editor")
    await editor.save()
    return await state_response(studio)


@router.patch("/editor/settings", response_model=StudioState)
async def update_editor_settings(
    settings_update: EditorSettingsUpdate,
    studio: StudioSession = Depends(deps.get_studio),
):
    editor = await module_for(studio, "editor")
    editor.update_settings(**settings_update.model_dump(exclude_none=True))
    return await state_response(studio)


@router.post("/{route}/send/{item_id}", response_model=StudioState)
async def send_to_editor(route: str, item_id: str, studio: StudioSession = Depends(deps.get_studio)):
    """Insert a reference to a character, term or event into the open chapter."""
    if route not in CATALOG_ROUTES:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"Route '{route}' not found")
    view = await module_for(studio, route)
    view.send_to_editor(item_id)
    return await state_response(studio)

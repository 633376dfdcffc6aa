"""Timeline event endpoints, nested under a book."""

from typing import Literal, Optional

from fastapi import APIRouter, Depends

from studio.api import deps
from studio.schemas.catalog import EventCreate, EventUpdate
from studio.schemas.chapter import ReorderRequest
from studio.services.timeline import TimelineService
from studio.session import StudioSession

router = APIRouter()


def event_to_response(event: dict) -> dict:
    # Add computed fields
    return {**event, "date_label": TimelineService.format_date(event)}


@router.get("/{book_id}/timeline/")
async def list_events(
    book_id: str,
    type: Optional[str] = None,
    q: Optional[str] = None,
    sort: Literal["order", "date"] = "order",
    studio: StudioSession = Depends(deps.get_studio),
):
    """
    List timeline events.

    ``sort=date`` orders by the partial date; missing parts sort last.
    """
    await studio.books.get(book_id)
    events = TimelineService.filter_by_type(await studio.timeline.get_all(book_id), type)
    events = TimelineService.search(events, q)
    if sort == "date":
        events = TimelineService.sort_by_date(events)
    return [event_to_response(e) for e in events]


@router.get("/{book_id}/timeline/stats")
async def event_stats(book_id: str, studio: StudioSession = Depends(deps.get_studio)):
    return TimelineService.stats(await studio.timeline.get_all(book_id))


@router.post("/{book_id}/timeline/")
async def create_event(book_id: str, event_data: EventCreate, studio: StudioSession = Depends(deps.get_studio)):
    data = event_data.model_dump(exclude_none=True)
    if "order" not in data:
        data["order"] = len(await studio.timeline.get_all(book_id))
    return event_to_response(await studio.timeline.create(book_id, data))


@router.post("/{book_id}/timeline/reorder")
async def reorder_events(
    book_id: str,
    request: ReorderRequest,
    studio: StudioSession = Depends(deps.get_studio),
):
    """Number events 0..n-1 in the given order."""
    return [event_to_response(e) for e in await studio.timeline.reorder(book_id, request.ids)]


@router.get("/{book_id}/timeline/{event_id}")
async def get_event(book_id: str, event_id: str, studio: StudioSession = Depends(deps.get_studio)):
    return event_to_response(await studio.timeline.get(book_id, event_id))


@router.patch("/{book_id}/timeline/{event_id}")
async def update_event(
    book_id: str,
    event_id: str,
    event_update: EventUpdate,
    studio: StudioSession = Depends(deps.get_studio),
):
    event = await studio.timeline.update(book_id, event_id, event_update.model_dump(exclude_unset=True))
    return event_to_response(event)


@router.delete("/{book_id}/timeline/{event_id}")
async def delete_event(book_id: str, event_id: str, studio: StudioSession = Depends(deps.get_studio)):
    await studio.timeline.delete(book_id, event_id)
    return {"detail": "Event deleted successfully"}


@router.put("/{book_id}/timeline/{event_id}/characters/{character_id}")
async def link_character(
    book_id: str,
    event_id: str,
    character_id: str,
    studio: StudioSession = Depends(deps.get_studio),
):
    """Link a character to an event."""
    await studio.characters.get(book_id, character_id)
    event = await studio.timeline.link(book_id, event_id, "character_ids", character_id)
    return event_to_response(event)


@router.delete("/{book_id}/timeline/{event_id}/characters/{character_id}")
async def unlink_character(
    book_id: str,
    event_id: str,
    character_id: str,
    studio: StudioSession = Depends(deps.get_studio),
):
    event = await studio.timeline.get(book_id, event_id)
    remaining = [i for i in event.get("character_ids") or [] if i != character_id]
    event = await studio.timeline.update(book_id, event_id, {"character_ids": remaining})
    return event_to_response(event)

# rectrack/app/routers/people.py
from __future__ import annotations

from fastapi import APIRouter, Depends, status
from starlette.concurrency import run_in_threadpool

from rectrack.app.deps import get_storage
from rectrack.app.schemas.recommendations import PersonCreate, PersonResponse
from rectrack.app.services.query_cache import CachedStorage

router = APIRouter(prefix="/people", tags=["people"])


@router.get("/", response_model=list[PersonResponse])
async def list_people(
    storage: CachedStorage = Depends(get_storage),
) -> list[PersonResponse]:
    people = await run_in_threadpool(storage.list_people)
    return [PersonResponse.from_domain(person) for person in people]


@router.post("/", response_model=PersonResponse, status_code=status.HTTP_201_CREATED)
async def add_person(
    payload: PersonCreate,
    storage: CachedStorage = Depends(get_storage),
) -> PersonResponse:
    person = await run_in_threadpool(storage.add_person, payload.name, payload.avatar)
    return PersonResponse.from_domain(person)

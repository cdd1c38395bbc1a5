from fastapi import HTTPException, Request

from notag.jobs.dispatcher import JobDispatcher
from notag.storage.temp_results import TempResultStore


def get_dispatcher(request: Request) -> JobDispatcher:
    dispatcher = getattr(request.app.state, "dispatcher", None)
    if dispatcher is None:
        raise HTTPException(status_code=503, detail="Job dispatcher not initialized")
    return dispatcher


def get_result_store(request: Request) -> TempResultStore:
    store = getattr(request.app.state, "result_store", None)
    if store is None:
        raise HTTPException(status_code=503, detail="Result store not initialized")
    return store

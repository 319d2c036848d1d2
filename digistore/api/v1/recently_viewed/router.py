"""Recently viewed products router"""

from fastapi import APIRouter, Depends, Query

from digistore.api.deps import get_session_id, get_store_repository
from digistore.core.storage import StoreRepository, RECENTLY_VIEWED_KEY
from digistore.schemas.lists import ProductRequest, RecentlyViewedResponse
from digistore.services.recently_viewed_service import RecentlyViewedStore

router = APIRouter()

get_histories = get_store_repository(RECENTLY_VIEWED_KEY, RecentlyViewedStore)


@router.get("", response_model=RecentlyViewedResponse)
async def get_recent(
    limit: int = Query(10, ge=1, le=100),
    session_id: str = Depends(get_session_id),
    histories: StoreRepository = Depends(get_histories)
):
    history = await histories.load(session_id)
    return RecentlyViewedResponse(items=history.get_recent_items(limit))


@router.post("", response_model=RecentlyViewedResponse)
async def record_view(
    body: ProductRequest,
    session_id: str = Depends(get_session_id),
    histories: StoreRepository = Depends(get_histories)
):
    history = await histories.load(session_id)
    history.add_item(body.product)
    await histories.save(session_id, history)
    return RecentlyViewedResponse(items=history.items)


@router.delete("/{product_id}", response_model=RecentlyViewedResponse)
async def remove_item(
    product_id: str,
    session_id: str = Depends(get_session_id),
    histories: StoreRepository = Depends(get_histories)
):
    history = await histories.load(session_id)
    history.remove_item(product_id)
    await histories.save(session_id, history)
    return RecentlyViewedResponse(items=history.items)


@router.post("/clear", response_model=RecentlyViewedResponse)
async def clear_all(
    session_id: str = Depends(get_session_id),
    histories: StoreRepository = Depends(get_histories)
):
    history = await histories.load(session_id)
    history.clear_all()
    await histories.save(session_id, history)
    return RecentlyViewedResponse(items=history.items)

"""Product comparison router"""

from fastapi import APIRouter, Depends

from digistore.api.deps import get_session_id, get_store_repository
from digistore.core.storage import StoreRepository, COMPARE_KEY
from digistore.schemas.lists import CompareAddResponse, CompareResponse, ProductRequest
from digistore.services.compare_service import CompareStore

router = APIRouter()

get_comparisons = get_store_repository(COMPARE_KEY, CompareStore)


@router.get("", response_model=CompareResponse)
async def get_compare(
    session_id: str = Depends(get_session_id),
    comparisons: StoreRepository = Depends(get_comparisons)
):
    compare = await comparisons.load(session_id)
    return CompareResponse(items=compare.items, max_items=compare.max_items)


@router.post("/items", response_model=CompareAddResponse)
async def add_item(
    body: ProductRequest,
    session_id: str = Depends(get_session_id),
    comparisons: StoreRepository = Depends(get_comparisons)
):
    """added=false when the product is already compared or the list is full"""
    compare = await comparisons.load(session_id)
    added = compare.add_item(body.product)
    if added:
        await comparisons.save(session_id, compare)
    return CompareAddResponse(added=added, items=compare.items)


@router.delete("/items/{product_id}", response_model=CompareResponse)
async def remove_item(
    product_id: str,
    session_id: str = Depends(get_session_id),
    comparisons: StoreRepository = Depends(get_comparisons)
):
    compare = await comparisons.load(session_id)
    compare.remove_item(product_id)
    await comparisons.save(session_id, compare)
    return CompareResponse(items=compare.items, max_items=compare.max_items)


@router.post("/clear", response_model=CompareResponse)
async def clear_all(
    session_id: str = Depends(get_session_id),
    comparisons: StoreRepository = Depends(get_comparisons)
):
    compare = await comparisons.load(session_id)
    compare.clear_all()
    await comparisons.save(session_id, compare)
    return CompareResponse(items=compare.items, max_items=compare.max_items)

"""Gift card wallet router"""

from fastapi import APIRouter, Depends
from typing import List

from digistore.api.deps import get_session_id, get_store_repository
from digistore.core.storage import StoreRepository, GIFT_CARDS_KEY
from digistore.schemas.lists import (
    ApplyGiftCardRequest,
    GiftCard,
    GiftCardWalletResponse,
    UseBalanceRequest,
    UseBalanceResponse,
)
from digistore.services.gift_card_service import GIFT_CARD_AMOUNTS, GiftCardWallet

router = APIRouter()

get_wallets = get_store_repository(GIFT_CARDS_KEY, GiftCardWallet)


def to_response(wallet: GiftCardWallet) -> GiftCardWalletResponse:
    return GiftCardWalletResponse(
        purchased_cards=wallet.purchased_cards,
        received_cards=wallet.received_cards,
        applied_gift_card=wallet.applied_gift_card,
    )


@router.get("/amounts")
async def get_amounts() -> List[str]:
    return [str(amount) for amount in GIFT_CARD_AMOUNTS]


@router.get("", response_model=GiftCardWalletResponse)
async def get_wallet(
    session_id: str = Depends(get_session_id),
    wallets: StoreRepository = Depends(get_wallets)
):
    return to_response(await wallets.load(session_id))


@router.post("/purchased", response_model=GiftCardWalletResponse)
async def add_purchased_card(
    card: GiftCard,
    session_id: str = Depends(get_session_id),
    wallets: StoreRepository = Depends(get_wallets)
):
    wallet = await wallets.load(session_id)
    wallet.add_purchased_card(card)
    await wallets.save(session_id, wallet)
    return to_response(wallet)


@router.post("/received", response_model=GiftCardWalletResponse)
async def add_received_card(
    card: GiftCard,
    session_id: str = Depends(get_session_id),
    wallets: StoreRepository = Depends(get_wallets)
):
    wallet = await wallets.load(session_id)
    wallet.add_received_card(card)
    await wallets.save(session_id, wallet)
    return to_response(wallet)


@router.post("/apply", response_model=GiftCardWalletResponse)
async def apply_gift_card(
    body: ApplyGiftCardRequest,
    session_id: str = Depends(get_session_id),
    wallets: StoreRepository = Depends(get_wallets)
):
    wallet = await wallets.load(session_id)
    wallet.apply_gift_card(body.code, body.balance)
    await wallets.save(session_id, wallet)
    return to_response(wallet)


@router.delete("/apply", response_model=GiftCardWalletResponse)
async def clear_applied_card(
    session_id: str = Depends(get_session_id),
    wallets: StoreRepository = Depends(get_wallets)
):
    wallet = await wallets.load(session_id)
    wallet.clear_applied_card()
    await wallets.save(session_id, wallet)
    return to_response(wallet)


@router.post("/use-balance", response_model=UseBalanceResponse)
async def use_balance(
    body: UseBalanceRequest,
    session_id: str = Depends(get_session_id),
    wallets: StoreRepository = Depends(get_wallets)
):
    wallet = await wallets.load(session_id)
    remaining = wallet.use_balance(body.amount)
    await wallets.save(session_id, wallet)
    return UseBalanceResponse(remaining_to_pay=remaining, applied_gift_card=wallet.applied_gift_card)

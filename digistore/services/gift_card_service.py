"""
Gift card wallet service
Balances live on the backend; this keeps the shopper's view of them and
the card applied at checkout.
"""

from decimal import Decimal
from typing import Any, Dict, List, Optional
import logging

from pydantic import ValidationError

from digistore.schemas.lists import AppliedGiftCard, GiftCard
from digistore.utils.helpers import generate_code

logger = logging.getLogger(__name__)

# Gift card denominations
GIFT_CARD_AMOUNTS = [Decimal(10), Decimal(25), Decimal(50), Decimal(100), Decimal(200)]


def generate_gift_card_code() -> str:
    """Sixteen characters in groups of four, e.g. 7KQ2-XM4P-0ZRT-B8CD"""
    return generate_code(groups=4, group_size=4)


class GiftCardWallet:
    """Purchased and received cards, newest first, plus the applied card"""

    def __init__(
        self,
        purchased_cards: Optional[List[GiftCard]] = None,
        received_cards: Optional[List[GiftCard]] = None,
        applied_gift_card: Optional[AppliedGiftCard] = None
    ):
        self.purchased_cards: List[GiftCard] = list(purchased_cards or [])
        self.received_cards: List[GiftCard] = list(received_cards or [])
        self.applied_gift_card = applied_gift_card

    def add_purchased_card(self, card: GiftCard) -> None:
        self.purchased_cards.insert(0, card)

    def add_received_card(self, card: GiftCard) -> None:
        self.received_cards.insert(0, card)

    def apply_gift_card(self, code: str, balance: Decimal) -> None:
        self.applied_gift_card = AppliedGiftCard(code=code.strip().upper(), balance=balance)

    def clear_applied_card(self) -> None:
        self.applied_gift_card = None

    def use_balance(self, amount: Decimal) -> Decimal:
        """
        Spend the applied card against an amount.
        Returns what is left to pay; an exhausted card is unapplied.
        """
        if self.applied_gift_card is None:
            return amount

        used = min(self.applied_gift_card.balance, amount)
        remaining_balance = self.applied_gift_card.balance - used

        if remaining_balance <= 0:
            self.applied_gift_card = None
        else:
            self.applied_gift_card = AppliedGiftCard(
                code=self.applied_gift_card.code,
                balance=remaining_balance
            )

        return amount - used

    def to_state(self) -> Dict[str, Any]:
        return {
            "purchasedCards": [card.to_json_dict() for card in self.purchased_cards],
            "receivedCards": [card.to_json_dict() for card in self.received_cards],
            "appliedGiftCard": (
                self.applied_gift_card.to_json_dict() if self.applied_gift_card else None
            ),
        }

    @classmethod
    def from_state(cls, state: Dict[str, Any]) -> "GiftCardWallet":
        def cards(raw_cards) -> List[GiftCard]:
            parsed = []
            for raw in raw_cards or []:
                try:
                    parsed.append(GiftCard.model_validate(raw))
                except ValidationError as e:
                    logger.warning(f"Dropping unreadable gift card: {e}")
            return parsed

        applied = None
        if state.get("appliedGiftCard"):
            try:
                applied = AppliedGiftCard.model_validate(state["appliedGiftCard"])
            except ValidationError as e:
                logger.warning(f"Dropping unreadable applied gift card: {e}")

        return cls(
            purchased_cards=cards(state.get("purchasedCards")),
            received_cards=cards(state.get("receivedCards")),
            applied_gift_card=applied,
        )

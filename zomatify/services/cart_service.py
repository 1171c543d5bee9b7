# zomatify/services/cart_service.py
import time
from decimal import Decimal
from typing import List

from pydantic import ValidationError

from zomatify.domain.schemas import CartItem, CartState, MenuItem, MenuItemOption, OrderItem
from zomatify.utils.settings import CART_STORAGE_KEY
from zomatify.utils.logging import get_logger

logger = get_logger(__name__)


def calculate_cart_totals(items: List[CartItem]) -> tuple[Decimal, int]:
    """Fold items into (total_price, total_items)."""
    total_price = sum((i.line_total for i in items), Decimal("0"))
    total_items = sum(i.quantity for i in items)
    return total_price, total_items


class CartService:
    """
    Client side cart.
    Every command replaces the state with a new CartState whose totals are
    folded from the items, then writes the snapshot through to the store.
    """

    def __init__(self, store, storage_key: str | None = None):
        self.store = store
        self.storage_key = storage_key or CART_STORAGE_KEY
        self._state = self._load()

    # query
    @property
    def state(self) -> CartState:
        return self._state

    @property
    def items(self) -> List[CartItem]:
        return list(self._state.items)

    @property
    def total_price(self) -> Decimal:
        return self._state.total_price

    @property
    def total_items(self) -> int:
        return self._state.total_items

    def get_item_by_id(self, item_id: str) -> CartItem | None:
        return next((i for i in self._state.items if i.id == item_id), None)

    def to_order_items(self) -> List[OrderItem]:
        return [
            OrderItem(
                menu_item_id=i.menu_item.id,
                name=i.menu_item.name,
                price=i.unit_price,
                quantity=i.quantity,
                special_instructions=i.special_instructions,
                selected_options=i.selected_options,
            )
            for i in self._state.items
        ]

    # commands
    def add_item(
        self,
        menu_item: MenuItem,
        quantity: int,
        special_instructions: str | None = None,
        selected_options: List[MenuItemOption] | None = None,
    ) -> CartState:
        """
        Add menu_item to the cart, merging into its existing line if there is one.

        The quantity sign is not checked: a negative value lowers the merged
        quantity and may leave a line at zero or below. A non-integer quantity
        raises pydantic's ValidationError and leaves the cart unchanged.
        """
        items = self.items
        index = next(
            (n for n, i in enumerate(items) if i.menu_item.id == menu_item.id),
            None,
        )

        if index is not None:
            existing = items[index]
            # only truthy values replace what the line already has
            items[index] = self._with(
                existing,
                quantity=existing.quantity + quantity,
                special_instructions=special_instructions or existing.special_instructions,
                selected_options=selected_options or existing.selected_options,
            )
            logger.info(f"Cart line {existing.id} quantity -> {items[index].quantity}")
        else:
            item = CartItem(
                id=f"{menu_item.id}-{int(time.time() * 1000)}",
                menu_item=menu_item,
                quantity=quantity,
                special_instructions=special_instructions,
                selected_options=selected_options,
            )
            items.append(item)
            logger.info(f"Added {menu_item.id} x{quantity} to cart as {item.id}")

        return self._commit(items)

    def remove_item(self, item_id: str) -> CartState:
        items = [i for i in self._state.items if i.id != item_id]
        return self._commit(items)

    def update_item_quantity(self, item_id: str, quantity: int) -> CartState:
        if quantity <= 0:
            return self.remove_item(item_id)

        items = [
            self._with(i, quantity=quantity) if i.id == item_id else i
            for i in self._state.items
        ]
        return self._commit(items)

    def update_item_instructions(self, item_id: str, instructions: str) -> CartState:
        items = [
            self._with(i, special_instructions=instructions) if i.id == item_id else i
            for i in self._state.items
        ]
        # price does not depend on instructions
        self._state = CartState(
            items=items,
            total_price=self._state.total_price,
            total_items=self._state.total_items,
        )
        self._persist()
        return self._state

    def clear_cart(self) -> CartState:
        logger.info("Clearing cart")
        return self._commit([])

    # internals
    @staticmethod
    def _with(item: CartItem, **changes) -> CartItem:
        data = item.model_dump()
        data.update(changes)
        return CartItem.model_validate(data)

    def _commit(self, items: List[CartItem]) -> CartState:
        total_price, total_items = calculate_cart_totals(items)
        self._state = CartState(items=items, total_price=total_price, total_items=total_items)
        self._persist()
        return self._state

    def _persist(self) -> None:
        self.store.save(self.storage_key, self._state.model_dump_json(by_alias=True))

    def _load(self) -> CartState:
        raw = self.store.load(self.storage_key)
        if not raw:
            return CartState()

        try:
            saved = CartState.model_validate_json(raw)
        except ValidationError as e:
            logger.error(f"Error parsing saved cart {self.storage_key}: {e}")
            return CartState()

        total_price, total_items = calculate_cart_totals(saved.items)
        return CartState(items=saved.items, total_price=total_price, total_items=total_items)

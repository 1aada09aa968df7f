import logging
from typing import Dict, List, Optional, Sequence

from app.domain.models.cart import Cart, CartItem, CartLineRequest
from app.domain.models.inventory import InventoryItem

logger = logging.getLogger(__name__)


class CartNotFoundError(LookupError):
    pass

class CartAccessError(PermissionError):
    pass

class UnknownSkuError(LookupError):
    def __init__(self, skus: Sequence[str]):
        self.skus = list(skus)
        super().__init__(f"Not in this store's inventory: {', '.join(self.skus)}")


def to_cart_item(item: InventoryItem, quantity: int) -> CartItem:
    return CartItem(sku=item.sku, name=item.name, price=item.price, quantity=quantity, location=item.location)


def merge_lines(lines: Sequence[CartLineRequest]) -> Dict[str, int]:
    """Quantities per SKU, first-seen order; repeated SKUs add up."""
    out: Dict[str, int] = {}
    for line in lines:
        out[line.sku] = out.get(line.sku, 0) + line.quantity
    return out


class CartService:
    """
    Cart operations for one caller (store + user). Lines are only ever built from
    the store's inventory: a SKU that does not exist there is rejected, never
    stored as a placeholder.
    """

    def __init__(self, carts, inventory):
        self.carts = carts
        self.inventory = inventory

    async def _lookup(self, store_id: str, skus: Sequence[str]) -> Dict[str, InventoryItem]:
        if not skus:
            return {}
        found = {it.sku: it for it in await self.inventory.get_many_by_skus(store_id, list(skus))}
        missing = [s for s in skus if s not in found]
        if missing:
            logger.info(f"Cart rejected unknown skus store_id={store_id} skus={missing}")
            raise UnknownSkuError(missing)
        return found

    # ---- reads --------------------------------------------------------------

    async def get(self, cart_id: str, store_id: str) -> Cart:
        cart = await self.carts.get(cart_id)
        if cart is None:
            raise CartNotFoundError(cart_id)
        if cart.store_id != store_id:
            raise CartAccessError(cart_id)
        return cart

    async def list_carts(self, store_id: str, user_id: str, limit: int = 20) -> List[Cart]:
        return await self.carts.list_for_user(store_id, user_id, limit=limit)

    async def current(self, store_id: str, user_id: str) -> Cart:
        """The user's most recently created cart, or a new empty one."""
        return await self.carts.current(store_id, user_id) or await self.carts.create(store_id, user_id)

    async def _existing_current(self, store_id: str, user_id: str) -> Cart:
        cart = await self.carts.current(store_id, user_id)
        if cart is None:
            raise CartNotFoundError(f"no cart for user_id={user_id}")
        return cart

    # ---- writes -------------------------------------------------------------

    async def create(
        self,
        store_id: str,
        user_id: str,
        lines: Sequence[CartLineRequest],
        conversation_id: Optional[str] = None,
    ) -> Cart:
        wanted = {sku: qty for sku, qty in merge_lines(lines).items() if qty > 0}
        found = await self._lookup(store_id, list(wanted))
        items = [to_cart_item(found[sku], qty) for sku, qty in wanted.items()]
        return await self.carts.create(store_id, user_id, items, conversation_id=conversation_id)

    async def add(self, store_id: str, user_id: str, sku: str, quantity: int = 1) -> Cart:
        found = await self._lookup(store_id, [sku])
        cart = await self.current(store_id, user_id)
        updated = await self.carts.add_item(cart.id, to_cart_item(found[sku], quantity))
        if updated is None:
            raise CartNotFoundError(cart.id)
        return updated

    async def remove(self, store_id: str, user_id: str, sku: str) -> Cart:
        cart = await self._existing_current(store_id, user_id)
        return await self.carts.remove_item(cart.id, sku) or cart

    async def clear(self, store_id: str, user_id: str) -> Cart:
        cart = await self._existing_current(store_id, user_id)
        return await self.carts.clear(cart.id) or cart

    async def update(self, cart_id: str, store_id: str, lines: Sequence[CartLineRequest]) -> Cart:
        """
        Set quantities for the given SKUs: 0 removes the line, a new SKU is added,
        lines not mentioned are kept as they are.
        """
        cart = await self.get(cart_id, store_id)
        wanted = merge_lines(lines)
        current = {i.sku: i for i in cart.items}
        found = await self._lookup(store_id, [s for s, q in wanted.items() if q > 0 and s not in current])

        items: List[CartItem] = []
        for sku, qty in wanted.items():
            if qty == 0:
                continue
            if sku in current:
                items.append(current[sku].model_copy(update={"quantity": qty}))
            else:
                items.append(to_cart_item(found[sku], qty))
        items += [i for i in cart.items if i.sku not in wanted]

        updated = await self.carts.replace_items(cart.id, items)
        if updated is None:
            raise CartNotFoundError(cart.id)
        return updated

"""
Client-side catalogue, cart and checkout state.

Adding a lesson to the cart reserves a seat locally: the matching entry in
``lessons`` loses one unit of availability while the server copy stays
untouched. The reservation is only pushed to the server by ``checkout``,
which posts the order and then decrements each lesson one request at a
time. Nothing is rolled back:

- a failed order post leaves the cart, the form and the local reservations
  as they were, so local availability stays lower than the server's;
- a failed decrement after a successful post is logged and skipped, the
  line stays ``optimistic`` and the server keeps the seat.

Each cart line records where it stands in that sequence with a
``LineState``.
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, List, Optional

import requests

from .client import LessonShopClient
from .seed import SAMPLE_LESSONS

logger = logging.getLogger(__name__)

SORT_FIELDS = ("subject", "location", "price", "availability")


class LineState(str, Enum):
    OPTIMISTIC = "optimistic"  # reserved locally only
    CONFIRMED = "confirmed"  # server availability decremented
    REVERTED = "reverted"  # removed from the cart, local reservation undone


@dataclass
class CartLine:
    lesson: Dict[str, Any]
    state: LineState = LineState.OPTIMISTIC

    @property
    def lesson_id(self) -> str:
        return self.lesson["_id"]

    @property
    def price(self) -> float:
        return self.lesson["price"]

    def snapshot(self) -> Dict[str, Any]:
        """Order line item: availability is not part of an order."""
        return {
            "_id": self.lesson["_id"],
            "subject": self.lesson["subject"],
            "location": self.lesson["location"],
            "price": self.lesson["price"],
        }


@dataclass
class OrderForm:
    name: str = ""
    phone: str = ""

    def reset(self) -> None:
        self.name = ""
        self.phone = ""


@dataclass
class CheckoutResult:
    order: Dict[str, Any]
    lines: List[CartLine] = field(default_factory=list)

    @property
    def confirmed(self) -> List[CartLine]:
        return [line for line in self.lines if line.state is LineState.CONFIRMED]

    @property
    def unconfirmed(self) -> List[CartLine]:
        return [line for line in self.lines if line.state is not LineState.CONFIRMED]


def _log_alert(message: str) -> None:
    logger.info("ALERT: %s", message)


class CartController:
    """
    Holds the catalogue snapshot, the cart, order history and the order form.

    Args:
        client: API client used for every network call
        alert: Called with a user-facing message after checkout outcomes
    """

    def __init__(self, client: LessonShopClient, alert: Optional[Callable[[str], None]] = None):
        self.client = client
        self.alert = alert or _log_alert

        self.current_view = "lessons"
        self.lessons: List[Dict[str, Any]] = []
        self.cart: Dict[str, CartLine] = {}
        self.orders: List[Dict[str, Any]] = []
        self.order_form = OrderForm()

        self.search_query = ""
        self.sort_by = "subject"
        self.sort_order = "asc"

    # ------------------------------
    # Loading
    # ------------------------------
    def load(self) -> None:
        self.fetch_lessons()
        self.fetch_orders()

    def fetch_lessons(self) -> None:
        try:
            self.lessons = self.client.list_lessons()
        except requests.RequestException as e:
            logger.error("Error fetching lessons, using mock catalogue: %s", e)
            self.load_mock_data()

    def fetch_orders(self) -> None:
        try:
            self.orders = self.client.list_orders()
        except requests.RequestException as e:
            logger.error("Error fetching orders: %s", e)

    def load_mock_data(self) -> None:
        self.lessons = [{"_id": str(i), **lesson} for i, lesson in enumerate(SAMPLE_LESSONS, start=1)]

    # ------------------------------
    # Catalogue view
    # ------------------------------
    def visible_lessons(
        self,
        query: Optional[str] = None,
        sort_by: Optional[str] = None,
        sort_order: Optional[str] = None,
    ) -> List[Dict[str, Any]]:
        query = (self.search_query if query is None else query).lower()
        sort_by = sort_by or self.sort_by
        sort_order = sort_order or self.sort_order
        if sort_by not in SORT_FIELDS:
            raise ValueError(f"sort_by must be one of: {', '.join(SORT_FIELDS)}")

        lessons = self.lessons
        if query:
            lessons = [
                lesson for lesson in lessons
                if query in lesson["subject"].lower() or query in lesson["location"].lower()
            ]

        def key(lesson):
            value = lesson[sort_by]
            return value.lower() if isinstance(value, str) else value

        return sorted(lessons, key=key, reverse=sort_order == "desc")

    # ------------------------------
    # Cart
    # ------------------------------
    @property
    def cart_items(self) -> List[Dict[str, Any]]:
        return [line.lesson for line in self.cart.values()]

    @property
    def cart_total(self) -> float:
        return sum(line.price for line in self.cart.values())

    def _local_lesson(self, lesson_id: str) -> Optional[Dict[str, Any]]:
        for lesson in self.lessons:
            if lesson["_id"] == lesson_id:
                return lesson
        return None

    def add_to_cart(self, lesson: Dict[str, Any]) -> bool:
        """Reserve one seat locally. Returns False when nothing changed."""
        if lesson["availability"] <= 0 or lesson["_id"] in self.cart:
            return False

        self.cart[lesson["_id"]] = CartLine(lesson=dict(lesson))
        local = self._local_lesson(lesson["_id"])
        if local is not None:
            local["availability"] -= 1
        return True

    def remove_from_cart(self, lesson_id: str) -> Optional[CartLine]:
        line = self.cart.pop(lesson_id, None)
        if line is None:
            return None

        local = self._local_lesson(lesson_id)
        if local is not None:
            local["availability"] += 1
        line.state = LineState.REVERTED
        return line

    # ------------------------------
    # Checkout
    # ------------------------------
    def checkout(self) -> Optional[CheckoutResult]:
        """
        Post the order, then decrement server availability line by line.

        Returns None when the cart is empty or the order was not created.
        """
        if not self.cart:
            return None

        lines = list(self.cart.values())
        order_data = {
            "name": self.order_form.name,
            "phone": self.order_form.phone,
            "lessons": [line.snapshot() for line in lines],
            "total": self.cart_total,
        }

        try:
            new_order = self.client.create_order(order_data)
        except requests.HTTPError as e:
            logger.error("Order was rejected: %s", e)
            self.alert("Failed to place order. Please try again.")
            return None
        except requests.RequestException as e:
            logger.error("Error placing order: %s", e)
            self.alert("Error placing order. Please try again.")
            return None

        self.orders.insert(0, new_order)

        for line in lines:
            try:
                self.client.adjust_availability(line.lesson_id, -1)
            except requests.RequestException as e:
                logger.error("Error updating availability of lesson %s: %s", line.lesson_id, e)
                continue
            line.state = LineState.CONFIRMED

        self.cart = {}
        self.order_form.reset()
        self.alert("Order placed successfully!")
        self.current_view = "orders"
        return CheckoutResult(order=new_order, lines=lines)

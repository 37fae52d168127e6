# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Shared test configuration and fixtures."""

try:
    import sitelens  # noqa: F401
except ImportError:
    raise ImportError("sitelens is not installed. Run: pip install -e '.[test]'") from None

import pytest

from sitelens import events
from sitelens.cache_store import InMemoryKeyValueStore


class FakeClock:
    """Manually advanced clock for TTL and breaker-window tests."""

    def __init__(self, start: float = 1_700_000_000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture(autouse=True)
def _reset_events():
    """Listeners registered by one test must not leak into the next."""
    events._reset_for_testing()
    yield
    events._reset_for_testing()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def store(clock) -> InMemoryKeyValueStore:
    return InMemoryKeyValueStore(clock=clock)


@pytest.fixture
def recorded_events():
    """Capture ``(event_type, payload)`` pairs emitted during the test."""
    seen: list[tuple[str, dict]] = []

    def _listener(event_type: str, payload: dict) -> None:
        seen.append((event_type, payload))

    events.add_listener(_listener)
    yield seen
    events.remove_listener(_listener)


ECOMMERCE_HTML = """\
<!doctype html>
<html lang="en-US">
<head>
  <title>Trailhead Outfitters | Shop Hiking Boots &amp; Outdoor Gear</title>
  <meta name="description" content="Shop hiking boots, jackets and packs. Free shipping and free returns on every order.">
  <script type="application/ld+json">
  {"@context": "https://schema.org", "@type": "Product", "name": "Ridge Runner Boot",
   "offers": {"@type": "Offer", "price": "129.00", "priceCurrency": "USD"}}
  </script>
  <script type="application/ld+json">
  {"@context": "https://schema.org", "@type": "BreadcrumbList", "itemListElement": []}
  </script>
</head>
<body>
  <nav>
    <a href="/men">Men</a>
    <a href="/women">Women</a>
    <a href="/footwear">Footwear</a>
    <a href="/sale">Sale</a>
    <a href="/cart">Cart</a>
  </nav>
  <h1>Ridge Runner Hiking Boot</h1>
  <h2>Product details</h2>
  <p>Price $129.00. Add to cart today. Free shipping on all products, easy returns within 30 days.</p>
  <p>SKU RR-2231. Checkout securely. This product ships in two days.</p>
  <button>Add to cart</button>
</body>
</html>
"""

UNIVERSITY_HTML = """\
<html lang="en">
<head><title>Northfield University</title></head>
<body>
  <nav><a href="/admissions">Admissions</a><a href="/academics">Academics</a></nav>
  <h1>Welcome to Northfield</h1>
  <p>Apply for admissions, explore degree programs and tuition.</p>
</body>
</html>
"""


@pytest.fixture
def ecommerce_html() -> str:
    return ECOMMERCE_HTML


@pytest.fixture
def university_html() -> str:
    return UNIVERSITY_HTML

"""
Offshore
========

Backend for a multi-jurisdiction offshore company incorporation flow:
onboarding → incorporation → pricing → payment → KYC, across BVI, Cayman,
Panama, Hong Kong and Singapore.

Import structure
----------------
`import offshore` is intentionally cheap: sub‑modules are imported on
demand. The HTTP layer lives in the sibling :pymod:`api` package.

Sub‑modules
~~~~~~~~~~~
- :pymod:`offshore.models`         – status enums, ``Identity``, ``RouteTarget``
- :pymod:`offshore.db`             – SQLModel tables, engine and session factory
- :pymod:`offshore.jurisdictions`  – slug/token tables and fuzzy normalization
- :pymod:`offshore.lifecycle`      – state‑machine guards for incorporations and orders
- :pymod:`offshore.onboarding`     – onboarding / company‑form CRUD with ownership checks
- :pymod:`offshore.orders`         – pending orders, order codes, payment, reminders
- :pymod:`offshore.mailer`         – outbound email with simulation mode
- :pymod:`offshore.resume`         – "resume where I left off" router
- :pymod:`offshore.prospects`      – company‑name reservations

Quick start
-----------
>>> from offshore.resume import decide_resume_route
>>> decide_resume_route(None).url
'/incorporate/bvi'

"""

__all__ = [
    "models",
    "db",
    "jurisdictions",
    "lifecycle",
    "onboarding",
    "orders",
    "mailer",
    "resume",
    "prospects",
]

__version__ = "0.1.0"

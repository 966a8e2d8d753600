"""Prometheus metrics for the inventory lifecycle."""

from __future__ import annotations

from prometheus_client import Counter

RESERVATION_ATTEMPTS = Counter(
    "inventory_reservation_attempts_total",
    "Part item reservation attempts",
    ["outcome"],  # outcome: reserved, race_lost
)

PART_ITEM_TRANSITIONS = Counter(
    "inventory_part_item_transitions_total",
    "Committed part item status transitions",
    ["from_status", "to_status"],
)

DOCUMENT_TRANSITIONS = Counter(
    "inventory_document_transitions_total",
    "Inventory document status changes",
    ["document", "status"],  # document: request, issue, receipt
)

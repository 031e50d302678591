"""
Sort order helpers.

Sort order is a plain integer column kept equal to the position of the
row in its user-chosen list. Categories additionally need a merge step:
their order is pushed in the background, and a refresh that lands
before the push is confirmed must not bring back the stale server order.
"""

from typing import TypeVar

from expense_app.models.entities import Asset, Category, Wallet

Ordered = TypeVar("Ordered", Wallet, Asset, Category)


def renumber(items: list[Ordered]) -> list[Ordered]:
    """Copies of `items` with sort_order set to their list position."""
    return [item.model_copy(update={"sort_order": index}) for index, item in enumerate(items)]


def merge_categories(
    local: list[Category],
    server: list[Category],
) -> tuple[list[Category], int]:
    """
    Merge freshly fetched categories into the local order.

    - Local order is kept.
    - A local category that still exists on the server takes the
      server's content (name, type, icon, group).
    - Local categories missing on the server were deleted elsewhere
      and are dropped, so the next push does not bring them back.
    - Server categories unknown locally are appended, in server order.

    Returns the renumbered list and how many categories were appended.
    """
    server_by_id = {category.id: category for category in server}
    local_ids = {category.id for category in local}

    merged = [server_by_id[category.id] for category in local if category.id in server_by_id]
    appended = [category for category in server if category.id not in local_ids]
    merged.extend(appended)

    return renumber(merged), len(appended)

from __future__ import annotations

from typing import Any

from rowguard import Applied, RowGuardDB, VersionToken, raise_for_outcome


def patch_versioned(db: RowGuardDB, product_id: int, data: dict[str, Any], token: VersionToken) -> Applied:
    """Apply a partial update guarded by the token the client last saw.

    The client's token goes straight to the conditional write, so any change
    made since the client's GET surfaces as a conflict (409). The returned
    ``Applied`` holds the row and token as this write left them.
    """
    return raise_for_outcome(db.versioned_products.write(product_id, data, token))

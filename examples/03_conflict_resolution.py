from rowguard import ConflictDetected, RowGuardDB, Snapshot, attempt_save, capture

"""
Resolution is caller policy. Three common ones, each built on a fresh read:

  reload   drop local changes and keep what is stored
  force    reapply every local change on top of the stored row
  merge    reapply only local changes to fields the other writer left alone
"""


def resolve(db: RowGuardDB, local, loaded: Snapshot, conflict: ConflictDetected, policy: str):
    fresh = db.versioned_products.get(local.id)
    if policy == "reload":
        return fresh
    for field, value in local.pending_changes().items():
        theirs_changed = conflict.current[field] != getattr(loaded, field)
        if policy == "force" or not theirs_changed:
            setattr(fresh, field, value)
    return fresh


def main():
    for policy in ("reload", "force", "merge"):
        db = RowGuardDB.in_memory()
        product = db.reset_versioned_products()
        loaded = capture(product)

        product.name = "Super Widget v2"
        product.stock = 10
        db.versioned_products.write_direct(product.id, {"stock": 50})

        outcome = attempt_save(db.versioned_products, product)
        if isinstance(outcome, ConflictDetected):
            fresh = resolve(db, product, loaded, outcome, policy)
            if fresh.is_dirty:
                attempt_save(db.versioned_products, fresh)
        print(policy, "->", db.versioned_products.get(product.id).values())
        db.close()


if __name__ == "__main__":
    main()

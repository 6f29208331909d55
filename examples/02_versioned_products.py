from rowguard import RowGuardDB, attempt_save


def main():
    db = RowGuardDB.in_memory()
    product = db.reset_versioned_products()
    print("token:", product.row_version)

    product.stock = 90
    attempt_save(db.versioned_products, product)
    print("token:", product.row_version)

    # raw SQL through the adapter still re-stamps the row
    db.adapter.execute("UPDATE products_with_version SET stock = 80 WHERE id = ?;", [product.id])
    db.adapter.commit()

    product.stock = 70
    outcome = attempt_save(db.versioned_products, product)
    print("outcome:", outcome.kind, "current:", outcome.current if not outcome.ok else None)

    db.close()


if __name__ == "__main__":
    main()

from rowguard import RowGuardDB, save


def main():
    db = RowGuardDB.in_memory()
    product = db.reset_products()

    product.name = "Super Widget"
    product.price = "29.99"
    print("dirty:", sorted(product.dirty_fields))

    # another writer changes stock behind our back
    db.products.write_direct(product.id, {"stock": 75})

    save(db.products, product)
    print("stored:", db.products.get(product.id).values())  # stock 75 survives

    db.close()


if __name__ == "__main__":
    main()

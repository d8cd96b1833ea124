from typing import Any, Dict, List


def cart_items(*specs) -> List[Dict[str, Any]]:
    """cart_items(("SKU-1", 60, 2), ...) -> lignes de panier brutes."""
    return [
        {"productId": f"prod-{sku}", "sku": sku, "title": f"Item {sku}", "price": price, "quantity": qty}
        for sku, price, qty in specs
    ]


ADDRESS = {
    "name": "Ada Buyer",
    "company": "Acme",
    "address1": "1 Main St",
    "city": "Springfield",
    "state": "IL",
    "zip": "62701",
    "country": "US",
    "phone": "555-0100",
}

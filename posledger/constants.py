"""Initial catalogue loaded by ``flask seed-catalog`` on an empty database."""
from decimal import Decimal

DEFAULT_EXCHANGE_RATE = Decimal('46.00')  # Bs per USD

INITIAL_PRODUCTS = [
    # Pan salado
    {'id': '1', 'name': 'Pan Francés', 'price_retail': '0.25', 'price_wholesale': '0.18', 'cost': '0.10', 'stock': 600, 'category': 'Panadería Salada'},
    {'id': '2', 'name': 'Pan Canilla', 'price_retail': '0.50', 'price_wholesale': '0.35', 'cost': '0.20', 'stock': 400, 'category': 'Panadería Salada'},
    {'id': '3', 'name': 'Pan Campesino', 'price_retail': '1.20', 'price_wholesale': '0.90', 'cost': '0.50', 'stock': 100, 'category': 'Panadería Salada'},
    {'id': '4', 'name': 'Pan Sobado', 'price_retail': '1.00', 'price_wholesale': '0.75', 'cost': '0.40', 'stock': 120, 'category': 'Panadería Salada'},
    # Pan dulce / rellenos
    {'id': '5', 'name': 'Pan de Guayaba', 'price_retail': '1.80', 'price_wholesale': '1.40', 'cost': '0.70', 'stock': 80, 'category': 'Panadería Dulce'},
    {'id': '6', 'name': 'Pan de Queso', 'price_retail': '2.00', 'price_wholesale': '1.60', 'cost': '0.90', 'stock': 60, 'category': 'Panadería Dulce'},
    {'id': '7', 'name': 'Pan Dulce (Acemita)', 'price_retail': '0.80', 'price_wholesale': '0.60', 'cost': '0.30', 'stock': 150, 'category': 'Panadería Dulce'},
    {'id': '8', 'name': 'Pan de Coco', 'price_retail': '1.50', 'price_wholesale': '1.10', 'cost': '0.60', 'stock': 50, 'category': 'Panadería Dulce'},
    # Repostería / otros
    {'id': '9', 'name': 'Galletas (Pasta Seca 1kg)', 'price_retail': '8.00', 'price_wholesale': '6.50', 'cost': '4.00', 'stock': 30, 'category': 'Repostería'},
    {'id': '10', 'name': 'Galletas Polvorosas', 'price_retail': '2.50', 'price_wholesale': '1.90', 'cost': '1.00', 'stock': 40, 'category': 'Repostería'},
    {'id': '11', 'name': 'Catalinas', 'price_retail': '0.60', 'price_wholesale': '0.40', 'cost': '0.20', 'stock': 100, 'category': 'Repostería'},
]

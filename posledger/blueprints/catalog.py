"""Catalog blueprint - product queries and admin upserts."""
from flask import Blueprint, current_app, jsonify, request
from typing import Any, Dict, Tuple

from posledger.database import get_session
from posledger.services import factory
from posledger.utils.request_utils import get_json_body

catalog_bp = Blueprint('catalog', __name__, url_prefix='/products')


def _catalog():
    return factory.catalog_store(get_session(), current_app.config)


@catalog_bp.route('', methods=['GET'])
def list_products():
    """List products, optionally filtered by ``?category=``."""
    category = request.args.get('category', '').strip() or None
    products = _catalog().list(category=category)
    return jsonify({'products': [p.to_dict() for p in products]})


@catalog_bp.route('/categories', methods=['GET'])
def list_categories():
    return jsonify({'categories': _catalog().categories()})


@catalog_bp.route('/<product_id>', methods=['GET'])
def get_product(product_id: str):
    return jsonify(_catalog().require(product_id).to_dict())


@catalog_bp.route('/<product_id>', methods=['PUT'])
def upsert_product(product_id: str) -> Tuple[Any, int]:
    """Insert or update a product keyed by the id in the URL."""
    data: Dict[str, Any] = get_json_body()
    data['id'] = product_id
    catalog = _catalog()
    created = catalog.get(product_id) is None
    product = catalog.upsert(data)
    return jsonify(product.to_dict()), 201 if created else 200


@catalog_bp.route('/<product_id>', methods=['DELETE'])
def delete_product(product_id: str) -> Tuple[str, int]:
    _catalog().delete(product_id)
    return '', 204

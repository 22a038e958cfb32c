"""Sales blueprint - retail and dispatch sales, history and amendments."""
from flask import Blueprint, current_app, jsonify, request
from typing import Any, Tuple

from posledger.blueprints.metrics import sales_created_total, stock_conflicts_total
from posledger.database import get_session
from posledger.exceptions import InsufficientStockError, ValidationError
from posledger.models import SaleType
from posledger.services import factory
from posledger.utils.identifiers import new_id
from posledger.utils.request_utils import get_datetime_arg, get_json_body

sales_bp = Blueprint('sales', __name__, url_prefix='/sales')


def _coordinator():
    return factory.coordinator(get_session(), current_app.config)


def _sale_id(data) -> str:
    """Terminals should send their own id so a retry is recognised."""
    return str(data.get('id') or '').strip() or new_id()


def _sale_type_arg():
    value = request.args.get('type', '').strip()
    if not value:
        return None
    try:
        return SaleType(value)
    except ValueError:
        raise ValidationError(f'Tipo de venta inválido: {value}')


def _created(sale) -> Tuple[Any, int]:
    """201 for a new sale, 200 when a retry returned the stored one."""
    if sale.replayed:
        return jsonify(sale.to_dict()), 200
    sales_created_total.labels(type=sale.type.value).inc()
    return jsonify(sale.to_dict()), 201


@sales_bp.route('', methods=['GET'])
def list_sales():
    """Sales newest first. Filters: start (inclusive), end (exclusive), seller_id, client_id, type."""
    sales = _coordinator().list_sales(
        start=get_datetime_arg('start'),
        end=get_datetime_arg('end'),
        seller_id=request.args.get('seller_id', '').strip() or None,
        client_id=request.args.get('client_id', '').strip() or None,
        sale_type=_sale_type_arg(),
    )
    return jsonify({'sales': [s.to_dict() for s in sales]})


@sales_bp.route('/<sale_id>', methods=['GET'])
def get_sale(sale_id: str):
    return jsonify(_coordinator().get_sale(sale_id).to_dict())


@sales_bp.route('/retail', methods=['POST'])
def create_retail_sale() -> Tuple[Any, int]:
    data = get_json_body()
    try:
        sale = _coordinator().create_retail_sale(_sale_id(data), data.get('items'), data.get('seller_id'))
    except InsufficientStockError:
        stock_conflicts_total.inc()
        raise
    return _created(sale)


@sales_bp.route('/dispatch', methods=['POST'])
def create_dispatch_sale() -> Tuple[Any, int]:
    data = get_json_body()
    try:
        sale = _coordinator().create_dispatch_sale(
            _sale_id(data), data.get('client_id'), data.get('items'), data.get('seller_id')
        )
    except InsufficientStockError:
        stock_conflicts_total.inc()
        raise
    return _created(sale)


@sales_bp.route('/<sale_id>/items', methods=['PUT'])
def amend_sale(sale_id: str):
    """Rewrite the items of a sale. Stock and client debt are left as they are."""
    data = get_json_body()
    sale = _coordinator().amend_sale(sale_id, data.get('items'))
    return jsonify(sale.to_dict())

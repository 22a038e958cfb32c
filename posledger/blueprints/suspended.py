"""Suspended sales blueprint - hold, list, resume and discard parked carts."""
from flask import Blueprint, current_app, jsonify
from typing import Any, Tuple

from posledger.database import get_session
from posledger.services import factory
from posledger.utils.request_utils import get_json_body

suspended_bp = Blueprint('suspended', __name__, url_prefix='/suspended')


def _manager():
    return factory.suspension_manager(get_session(), current_app.config)


def _item_to_json(item):
    return {**item, 'unit_price': str(item['unit_price'])}


@suspended_bp.route('', methods=['GET'])
def list_held():
    return jsonify({'suspended': [s.to_dict() for s in _manager().list_held()]})


@suspended_bp.route('', methods=['POST'])
def hold_sale() -> Tuple[Any, int]:
    data = get_json_body()
    suspended = _manager().hold_sale(data.get('customer_name'), data.get('items'), data.get('total'))
    return jsonify(suspended.to_dict()), 201


@suspended_bp.route('/<suspension_id>/resume', methods=['POST'])
def resume_sale(suspension_id: str):
    items = _manager().resume_sale(suspension_id)
    return jsonify({'items': [_item_to_json(item) for item in items]})


@suspended_bp.route('/<suspension_id>', methods=['DELETE'])
def discard_sale(suspension_id: str) -> Tuple[str, int]:
    _manager().discard_sale(suspension_id)
    return '', 204

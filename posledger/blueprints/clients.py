"""Clients blueprint - client ledger queries, upserts and payments."""
from flask import Blueprint, current_app, jsonify, request
from typing import Any, Tuple

from posledger.blueprints.metrics import payments_registered_total
from posledger.database import get_session
from posledger.services import factory
from posledger.utils.request_utils import get_json_body

clients_bp = Blueprint('clients', __name__, url_prefix='/clients')


def _clients():
    return factory.client_store(get_session(), current_app.config)


@clients_bp.route('', methods=['GET'])
def list_clients():
    """List clients, optionally searching name/business name with ``?q=``."""
    search = request.args.get('q', '').strip() or None
    clients = _clients().list(search=search)
    return jsonify({'clients': [c.to_dict() for c in clients]})


@clients_bp.route('/<client_id>', methods=['GET'])
def get_client(client_id: str):
    return jsonify(_clients().require(client_id).to_dict())


@clients_bp.route('/<client_id>', methods=['PUT'])
def upsert_client(client_id: str) -> Tuple[Any, int]:
    data = get_json_body()
    data['id'] = client_id
    clients = _clients()
    created = clients.get(client_id) is None
    client = clients.upsert(data)
    return jsonify(client.to_dict()), 201 if created else 200


@clients_bp.route('/<client_id>', methods=['DELETE'])
def delete_client(client_id: str) -> Tuple[str, int]:
    _clients().delete(client_id)
    return '', 204


@clients_bp.route('/<client_id>/payments', methods=['POST'])
def register_payment(client_id: str):
    """Register an abono; debt never goes below zero."""
    data = get_json_body()
    coordinator = factory.coordinator(get_session(), current_app.config)
    client = coordinator.register_payment(client_id, data.get('amount'))
    payments_registered_total.inc()
    return jsonify(client.to_dict())

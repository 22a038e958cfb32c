"""Settings blueprint - exchange rate (Bs per USD)."""
from flask import Blueprint, current_app, jsonify

from posledger.database import get_session
from posledger.exceptions import ValidationError
from posledger.services import factory
from posledger.utils.request_utils import get_json_body

settings_bp = Blueprint('settings', __name__, url_prefix='/settings')


@settings_bp.route('', methods=['GET'])
def get_settings():
    settings = factory.settings_service(get_session(), current_app.config).get()
    return jsonify(settings.to_dict())


@settings_bp.route('', methods=['PUT'])
def save_settings():
    data = get_json_body()
    if data.get('exchange_rate') is None:
        raise ValidationError('Falta la tasa de cambio')
    settings = factory.settings_service(get_session(), current_app.config).save(data['exchange_rate'])
    return jsonify(settings.to_dict())

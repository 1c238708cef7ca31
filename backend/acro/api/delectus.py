from flask import Blueprint, jsonify

from acro.services.games.scheduler import delectus_status

delectus_api = Blueprint('delectus', __name__)


@delectus_api.route('/status', methods=['GET'])
def status():
    return jsonify(delectus_status())

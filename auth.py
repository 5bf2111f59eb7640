from flask import Blueprint, current_app, jsonify

import credentials
from schemas import LoginRequest, RegisterRequest, parse_body

auth_bp = Blueprint('auth', __name__)


@auth_bp.route('/register', methods=['POST'])
def register():
    payload = parse_body(RegisterRequest)
    user = credentials.register(payload.name, payload.email, payload.password)
    return jsonify(user.to_dict())


@auth_bp.route('/login', methods=['POST'])
def login():
    payload = parse_body(LoginRequest)
    user = credentials.verify_credentials(payload.email, payload.password)
    token = current_app.extensions['token_issuer'].issue(user.id)
    return jsonify({'token': token})

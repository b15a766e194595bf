from flask import current_app, request


def auth_service():
    return current_app.extensions["auth_service"]


def registration_service():
    return current_app.extensions["registration_service"]


def activity_log():
    return current_app.extensions["activity_log"]


def client_ip():
    return request.remote_addr or None

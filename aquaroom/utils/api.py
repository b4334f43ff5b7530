# --- aquaroom/utils/api.py ---
from flask import jsonify


def api_ok(message, data=None, **extra):
    return {
        "success": True,
        "message": message,
        "data": data,
        **extra,
    }


def api_error(message, data=None):
    return {
        "success": False,
        "message": message,
        "error": message,
        **(data or {}),
    }


# unified response helpers
def ok(message: str, data=None, status_code=200, **extra):
    resp = jsonify(api_ok(message, data, **extra))
    resp.status_code = status_code
    return resp


def err(message: str, status_code=400, data=None):
    resp = jsonify(api_error(message, data))
    resp.status_code = status_code
    return resp

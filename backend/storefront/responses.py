# Overview: JSON envelope helpers shared by every blueprint.

"""
Every API response has the shape {"success": bool, "data"?, "error"?, "message"?}.
Routes return these helpers instead of building dicts by hand so the
envelope cannot drift between blueprints.
"""

from flask import jsonify


def success(data=None, status: int = 200, message: str | None = None):
    body: dict = {"success": True}
    if data is not None:
        body["data"] = data
    if message:
        body["message"] = message
    return jsonify(body), status


def failure(error: str, status: int):
    return jsonify({"success": False, "error": error}), status

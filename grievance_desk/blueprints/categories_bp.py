"""
Category registry blueprint.

Routes:
  GET    /api/v1/categories          – list categories of the caller's office
  POST   /api/v1/categories          – create category
  PUT    /api/v1/categories/<id>     – update label / sub-categories
  DELETE /api/v1/categories/<id>     – delete (409 while tasks reference it)
"""

import logging

from flask import Blueprint, jsonify, request

import grievance_desk.services.category_service as category_service
from grievance_desk.middleware.tenant_context import current_caller
from grievance_desk.schemas import CreateCategoryRequest, UpdateCategoryRequest
from grievance_desk.utils.errors import register_error_handlers

logger = logging.getLogger(__name__)

categories_bp = Blueprint("categories", __name__, url_prefix="/api/v1/categories")
register_error_handlers(categories_bp)


@categories_bp.route("", methods=["GET"])
def list_categories():
    categories = category_service.list_categories(current_caller())
    return jsonify([c.to_dict() for c in categories])


@categories_bp.route("", methods=["POST"])
def create_category():
    """Body: { value, label, subcategories?: [str], tenant_id? (super_admin) }"""
    req = CreateCategoryRequest.from_payload(request.get_json(silent=True))
    category = category_service.create_category(current_caller(), req)
    return jsonify(category.to_dict()), 201


@categories_bp.route("/<int:category_id>", methods=["GET"])
def get_category(category_id):
    category = category_service.get_category(current_caller(), category_id)
    return jsonify(category.to_dict())


@categories_bp.route("/<int:category_id>", methods=["PUT"])
def update_category(category_id):
    req = UpdateCategoryRequest.from_payload(request.get_json(silent=True))
    category = category_service.update_category(current_caller(), category_id, req)
    return jsonify(category.to_dict())


@categories_bp.route("/<int:category_id>", methods=["DELETE"])
def delete_category(category_id):
    category_service.delete_category(current_caller(), category_id)
    return jsonify({"deleted": True})

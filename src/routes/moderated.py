"""Routes shared by every moderated resource type.

:func:`build_blueprint` produces the same set of endpoints for organizers,
special series and events; only the URL prefix and the JSON key of single
items differ.
"""
from __future__ import annotations

from flask import Blueprint, jsonify, request

from src.routes.auth import get_current_actor, require_actor
from src.routes.dependencies import get_entity_service
from src.routes.utils import read_json_object
from src.services.resources import ResourceType

__all__ = ["build_blueprint"]


def build_blueprint(resource: ResourceType) -> Blueprint:
    bp = Blueprint(
        resource.name.replace("-", "_"),
        __name__,
        url_prefix=f"/{resource.name}",
    )
    item_key = resource.item_key

    @bp.get("")
    def list_entities():
        service = get_entity_service(resource)
        result = service.list(request.args.to_dict(), get_current_actor())
        return jsonify(result)

    @bp.get("/pending")
    def list_pending():
        actor = require_actor()
        service = get_entity_service(resource)
        return jsonify(service.list_pending(actor, request.args.to_dict()))

    @bp.get("/check-slug/<slug>")
    def check_slug(slug: str):
        service = get_entity_service(resource)
        return jsonify(service.check_slug(slug))

    @bp.get("/slug/<slug>")
    def get_by_slug(slug: str):
        service = get_entity_service(resource)
        entity = service.get_by_slug(slug, get_current_actor())
        return jsonify({item_key: entity})

    @bp.get("/<entity_id>")
    def get_entity(entity_id: str):
        service = get_entity_service(resource)
        entity = service.get(entity_id, get_current_actor())
        return jsonify({item_key: entity})

    @bp.get("/<entity_id>/history")
    def get_history(entity_id: str):
        actor = require_actor()
        service = get_entity_service(resource)
        return jsonify({"history": service.history(entity_id, actor)})

    @bp.post("")
    def create_entity():
        actor = require_actor()
        data, error = read_json_object()
        if error is not None:
            return error
        service = get_entity_service(resource)
        entity = service.create(data, actor)
        return jsonify({item_key: entity}), 201

    @bp.route("/<entity_id>", methods=["PUT", "PATCH"])
    def update_entity(entity_id: str):
        actor = require_actor()
        data, error = read_json_object()
        if error is not None:
            return error
        service = get_entity_service(resource)
        entity = service.update(entity_id, data, actor)
        return jsonify({item_key: entity})

    @bp.post("/<entity_id>/approve")
    def approve_entity(entity_id: str):
        return _handle_workflow(entity_id, "approve")

    @bp.post("/<entity_id>/reject")
    def reject_entity(entity_id: str):
        return _handle_workflow(entity_id, "reject")

    @bp.delete("/<entity_id>")
    def delete_entity(entity_id: str):
        actor = require_actor()
        service = get_entity_service(resource)
        service.delete(entity_id, actor)
        return ("", 204)

    def _handle_workflow(entity_id: str, action: str):
        actor = require_actor()
        data, error = read_json_object(required=False)
        if error is not None:
            return error
        notes = data.get("notes")
        service = get_entity_service(resource)
        if action == "approve":
            entity = service.approve(entity_id, actor, notes)
        else:
            entity = service.reject(entity_id, actor, notes)
        return jsonify({item_key: entity})

    return bp

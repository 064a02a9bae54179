"""
Notes Blueprint.

Endpoints:
  GET     /api/v1/notes?individual_process_id=..|collective_process_id=..
  POST    /api/v1/notes
  PUT     /api/v1/notes/<id>
  DELETE  /api/v1/notes/<id>
"""

from flask import Blueprint, g, jsonify, request

from casedesk.blueprints import register_error_handlers
from casedesk.middleware.permission_required import login_required
from casedesk.services import note_service

notes_bp = Blueprint("notes", __name__, url_prefix="/api/v1")
register_error_handlers(notes_bp)


@notes_bp.route("/notes", methods=["GET"])
@login_required
def list_notes():
    notes = note_service.list_notes(
        g.current_user,
        individual_process_id=request.args.get("individual_process_id", type=int),
        collective_process_id=request.args.get("collective_process_id", type=int),
    )
    return jsonify([n.to_dict() for n in notes]), 200


@notes_bp.route("/notes", methods=["POST"])
@login_required
def create_note():
    data = request.get_json(silent=True) or {}
    return jsonify(note_service.create_note(g.current_user, data).to_dict()), 201


@notes_bp.route("/notes/<int:note_id>", methods=["PUT"])
@login_required
def update_note(note_id):
    data = request.get_json(silent=True) or {}
    return jsonify(note_service.update_note(g.current_user, note_id, data.get("content")).to_dict()), 200


@notes_bp.route("/notes/<int:note_id>", methods=["DELETE"])
@login_required
def delete_note(note_id):
    note_service.delete_note(g.current_user, note_id)
    return jsonify({"message": "Note deleted"}), 200

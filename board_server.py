#!/usr/bin/env python3
"""
Task Board Server
-----------------
JSON API over a single TaskBoardStore instance.

Usage:
    python board_server.py --config config.yaml
    python board_server.py --db ~/.local/share/taskboard/board.sqlite

API:
    GET    /health
    GET    /api/buckets                    → { buckets: [{name, protected, tasks}] }
    POST   /api/buckets                    → body { name, private?, token? }
    GET    /api/buckets/<name>?token=      → bucket view (obfuscated without token)
    GET    /api/open?url=/bucket/<name>?token=  → bucket view for a shared link
    POST   /api/buckets/<name>/tasks?token=  → start a new task
    POST   /api/tasks/<id>/after?token=    → body { bucket? }
    PATCH  /api/tasks/<id>?token=          → body: any of description, bucket,
                                             parent_id, tags, order, state, editing
    POST   /api/tasks/<id>/move?token=     → body { bucket, after? }
    POST   /api/tasks/<id>/editing?token=
    DELETE /api/tasks/<id>?token=
    POST   /api/seed                       → replace board with sample data

The store is single-writer, so the server runs without threads.

/api/seed takes no token and replaces the whole board, protected buckets
included. Only expose the server to people trusted with every bucket.
"""

import argparse
import logging
import os
import secrets
import sys

from flask import Flask, jsonify, request

from taskboard.config import Config
from taskboard.persistence import build_persistence
from taskboard.routing import bucket_path, parse_route
from taskboard.schema import TaskPatch
from taskboard.store import TaskBoardStore
from taskboard.view import bucket_view, is_authenticated

logger = logging.getLogger(__name__)


def create_app(store: TaskBoardStore) -> Flask:
    app = Flask(__name__)
    app.config["BOARD_STORE"] = store

    # ── Auth ─────────────────────────────────────────────────────────────────

    def _token() -> str:
        return request.args.get("token", "")

    def _allowed(bucket_name: str) -> bool:
        return is_authenticated(store.get_bucket_config(bucket_name), _token())

    def _forbidden(bucket_name: str):
        logger.warning(f"Rejected write to protected bucket {bucket_name}")
        return jsonify({"error": f"Invalid token for bucket '{bucket_name}'"}), 403

    def _task_or_404(task_id: str):
        task = store.get_task(task_id)
        if task is None:
            return None, (jsonify({"error": "Task not found"}), 404)
        if not _allowed(task.bucket):
            return None, _forbidden(task.bucket)
        return task, None

    def _body() -> dict:
        data = request.get_json(force=True, silent=True)
        return data if isinstance(data, dict) else {}

    # ── Routes ───────────────────────────────────────────────────────────────

    @app.route("/health")
    def health():
        state = store.get_state()
        return jsonify({
            "status": "ok",
            "tasks": len(state.tasks),
            "buckets": len(state.buckets),
            "error": state.error,
        })

    @app.route("/api/buckets", methods=["GET"])
    def api_buckets():
        buckets = [
            {
                "name": b.name,
                "protected": b.is_protected,
                "url": bucket_path(b.name),
                "tasks": len(store.tasks_in_bucket(b.name)),
            }
            for b in store.buckets
        ]
        return jsonify({"buckets": buckets, "count": len(buckets)})

    @app.route("/api/buckets", methods=["POST"])
    def api_create_bucket():
        data = _body()
        name = str(data.get("name", "")).strip()
        if not name:
            return jsonify({"error": "name is required"}), 400
        token = data.get("token") or ""
        if not token and data.get("private"):
            token = secrets.token_urlsafe(16)
        result = store.create_bucket(name, token)
        return jsonify({
            "bucket": result.bucket.name,
            "token": result.token,
            "url": bucket_path(result.bucket.name, result.token),
        }), 201

    @app.route("/api/buckets/<name>", methods=["GET"])
    def api_bucket_view(name):
        if store.get_bucket_config(name) is None:
            return jsonify({"error": f"Bucket '{name}' not found"}), 404
        view = bucket_view(store.get_state(), name, _token())
        return jsonify(view.to_dict())

    @app.route("/api/open", methods=["GET"])
    def api_open_link():
        route = parse_route(request.args.get("url", ""))
        if route.is_home:
            return jsonify({"route": "home", "buckets": [b.name for b in store.buckets]})
        if store.get_bucket_config(route.bucket) is None:
            return jsonify({"error": f"Bucket '{route.bucket}' not found"}), 404
        view = bucket_view(store.get_state(), route.bucket, route.token)
        return jsonify({"route": "bucket", **view.to_dict()})

    @app.route("/api/buckets/<name>/tasks", methods=["POST"])
    def api_add_task(name):
        if not _allowed(name):
            return _forbidden(name)
        task = store.add_temp_task(name)
        if task is None:
            pending = store.pending_task
            return jsonify({"error": "Another task is still being created", "task": pending.to_dict()}), 409
        return jsonify({"task": task.to_dict(), "pending": True}), 201

    @app.route("/api/tasks/<task_id>/after", methods=["POST"])
    def api_add_task_after(task_id):
        after, error = _task_or_404(task_id)
        if error:
            return error
        bucket = _body().get("bucket") or after.bucket
        if not isinstance(bucket, str):
            return jsonify({"error": "bucket must be a string"}), 400
        if not _allowed(bucket):
            return _forbidden(bucket)
        task = store.add_task_after(task_id, bucket)
        return jsonify({"task": task.to_dict()}), 201

    @app.route("/api/tasks/<task_id>", methods=["PATCH"])
    def api_update_task(task_id):
        task, error = _task_or_404(task_id)
        if error:
            return error
        patch = TaskPatch.from_dict(_body())
        try:
            patch.changes()
        except (TypeError, ValueError) as e:
            return jsonify({"error": f"Invalid field value: {e}"}), 400
        if patch.bucket and not _allowed(patch.bucket):
            return _forbidden(patch.bucket)
        updated = store.update_task(task_id, patch)
        if updated is None:
            return jsonify({"task": None, "deleted": True})
        return jsonify({"task": updated.to_dict(), "pending": updated.is_pending})

    @app.route("/api/tasks/<task_id>/move", methods=["POST"])
    def api_move_task(task_id):
        task, error = _task_or_404(task_id)
        if error:
            return error
        data = _body()
        bucket = data.get("bucket") or task.bucket
        if not isinstance(bucket, str):
            return jsonify({"error": "bucket must be a string"}), 400
        if not _allowed(bucket):
            return _forbidden(bucket)
        after = data.get("after")
        if after is not None and store.get_task(after) is None:
            return jsonify({"error": "Anchor task not found"}), 404
        moved = store.move_task(task_id, bucket, after)
        return jsonify({"task": moved.to_dict()})

    @app.route("/api/tasks/<task_id>/editing", methods=["POST"])
    def api_editing_task(task_id):
        task, error = _task_or_404(task_id)
        if error:
            return error
        store.editing_task(task_id)
        return jsonify({"task": store.get_task(task_id).to_dict()})

    @app.route("/api/tasks/<task_id>", methods=["DELETE"])
    def api_delete_task(task_id):
        task, error = _task_or_404(task_id)
        if error:
            return error
        store.delete_task(task_id)
        return jsonify({"deleted": task_id})

    @app.route("/api/seed", methods=["POST"])
    def api_seed():
        store.initialize_with_sample_data()
        state = store.get_state()
        return jsonify({"tasks": len(state.tasks), "buckets": [b.name for b in state.buckets]})

    return app


def build_store(cfg: Config) -> TaskBoardStore:
    store = TaskBoardStore(persistence=build_persistence(cfg))
    if cfg.seed_when_empty and not store.buckets:
        logger.info("Empty board, loading sample data")
        store.initialize_with_sample_data()
    return store


# ── Main ─────────────────────────────────────────────────────────────────────

def main():
    parser = argparse.ArgumentParser(description="Task Board Server")
    parser.add_argument("--config", help="Path to config.yaml (overrides TASKBOARD_CONFIG)")
    parser.add_argument("--host", help="Bind address")
    parser.add_argument("--port", type=int)
    parser.add_argument("--db", help="Storage path (overrides TASKBOARD_DB env var)")
    args = parser.parse_args()

    if args.db:
        os.environ["TASKBOARD_DB"] = args.db
    cfg = Config.load(args.config)

    logging.basicConfig(
        level=getattr(logging, cfg.log_level.upper(), logging.INFO),
        format="%(asctime)s [taskboard] %(levelname)s: %(message)s",
        handlers=[logging.StreamHandler(sys.stdout)],
    )

    store = build_store(cfg)
    app = create_app(store)
    host = args.host or cfg.host
    port = args.port or cfg.port
    logger.info(f"Serving {cfg.storage} board from {cfg.storage_path} on http://{host}:{port}")
    app.run(host=host, port=port, debug=False, threaded=False)


if __name__ == "__main__":
    main()

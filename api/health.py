from flask import Blueprint, current_app

bp = Blueprint("health", __name__)

@bp.get("/health")
def health():
    """
    Health check
    ---
    tags:
      - Health
    responses:
      200:
        description: API is up
        schema:
          type: object
          properties:
            status:
              type: string
              example: ok
            storage:
              type: string
              example: sql
    """
    return {"status": "ok", "storage": current_app.config["DB_BACKEND"]}, 200

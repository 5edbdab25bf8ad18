import logging

from flask import Flask, jsonify, request

from . import config, db
from .errors import CryptoEnvironmentError, InvalidArticleInput, InvalidCredentialInput, UserExistsError
from .logging_config import configure_logging
from .login_guard import LoginAttemptTracker, connect_redis

logger = logging.getLogger(__name__)

app = Flask(__name__)
login_tracker = LoginAttemptTracker(redis_client=connect_redis())

_initialized_paths = set()


def _payload() -> dict:
    payload = request.get_json(silent=True)
    if not isinstance(payload, dict):
        raise InvalidCredentialInput("expected a JSON object body")
    return payload


def _required(payload: dict, *names):
    values = []
    for name in names:
        value = payload.get(name)
        if not isinstance(value, str) or not value:
            raise InvalidCredentialInput(f"{name} is required")
        values.append(value)
    return values


def _number(value, field: str) -> float:
    # bool is an int subclass but never a valid score
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise InvalidArticleInput(f"{field} must be a number")
    return float(value)


def _article_tags(payload: dict):
    """Validate the optional article fields before anything is written."""
    read_level = payload.get("read_level")
    if read_level is not None:
        read_level = _number(read_level, "read_level")

    topics = payload.get("topics") or []
    if not isinstance(topics, list) or not all(isinstance(t, str) and t for t in topics):
        raise InvalidArticleInput("topics must be a list of non-empty strings")

    moods = payload.get("moods") or {}
    if not isinstance(moods, dict):
        raise InvalidArticleInput("moods must be an object mapping mood to probability")
    moods = {str(m): _number(p, f"moods.{m}") for m, p in moods.items()}

    sentiment = payload.get("sentiment") or {}
    if not isinstance(sentiment, dict):
        raise InvalidArticleInput("sentiment must be an object with positive/negative probabilities")
    if sentiment:
        sentiment = {
            "positive": _number(sentiment.get("positive", 0.0), "sentiment.positive"),
            "negative": _number(sentiment.get("negative", 0.0), "sentiment.negative"),
        }
    return read_level, topics, moods, sentiment


@app.before_request
def ensure_db():
    path = config.db_path()
    if path not in _initialized_paths:
        db.init_db()
        _initialized_paths.add(path)


@app.errorhandler(InvalidCredentialInput)
def invalid_input(e):
    return jsonify({"error": str(e)}), 400


@app.errorhandler(InvalidArticleInput)
def invalid_article(e):
    return jsonify({"error": str(e)}), 400


@app.errorhandler(CryptoEnvironmentError)
def crypto_unavailable(e):
    logger.exception("Credential hashing unavailable")
    return jsonify({"error": "credential hashing unavailable"}), 500


# -------------------------
# Users
# -------------------------
@app.route("/users", methods=["POST"])
def register():
    payload = _payload()
    username, password = _required(payload, "username", "password")
    try:
        db.add_user(username, password, payload.get("first_name", ""), payload.get("last_name", ""))
    except UserExistsError:
        return jsonify({"error": "username already taken"}), 409
    return jsonify({"username": username}), 201


@app.route("/login", methods=["POST"])
def login():
    payload = _payload()
    username, password = _required(payload, "username", "password")
    if login_tracker.is_locked(username):
        return jsonify({"error": "too many failed attempts"}), 423
    if db.check_password(username, password):
        login_tracker.reset(username)
        logger.info("Login succeeded for %s", username)
        return jsonify({"authenticated": True}), 200
    failures = login_tracker.record_failure(username)
    logger.info("Login failed for %s (%d consecutive)", username, failures)
    return jsonify({"authenticated": False}), 401


@app.route("/users/<username>/read_level", methods=["GET"])
def user_read_level(username):
    if db.get_user(username) is None:
        return jsonify({"error": "unknown user"}), 404
    return jsonify({"username": username, "avg_read_level": db.avg_read_level(username)}), 200


# -------------------------
# Articles
# -------------------------
@app.route("/articles", methods=["POST"])
def create_article():
    payload = _payload()
    name, username = _required(payload, "name", "username")
    if db.get_user(username) is None:
        return jsonify({"error": "unknown user"}), 404

    read_level, topics, moods, sentiment = _article_tags(payload)

    article_id = db.add_article(name, username)
    if read_level is not None:
        db.add_read_level(article_id, read_level)
    if topics:
        db.add_topics(article_id, topics)
    if moods:
        db.add_moods(article_id, moods)
    if sentiment:
        db.add_sentiment(article_id, sentiment["positive"], sentiment["negative"])
    return jsonify({"id": article_id}), 201


@app.route("/users/<username>/articles", methods=["GET"])
def user_articles(username):
    return jsonify({"username": username, "articles": db.list_articles(username)}), 200


# -------------------------
# Health + Ready endpoints
# -------------------------
@app.route("/health", methods=["GET"])
def health():
    return jsonify({"status": "ok"}), 200


def main():
    configure_logging()
    app.run(host="0.0.0.0", port=config.port())


if __name__ == "__main__":
    main()

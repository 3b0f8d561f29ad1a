# app.py
import logging
import os

from flask import Flask, send_from_directory
from flask_cors import CORS

from .errors import register_error_handlers
from .firestore import FirestoreDocumentStore
from .models import db
from .payments import payments_bp
from .rooms import rooms_bp
from .store import MemoryDocumentStore, SqlDocumentStore


def load_config(app, overrides=None):
    # --- Core config (env-driven) ---
    app.config['STORE_BACKEND'] = os.getenv('STORE_BACKEND', 'sql')
    app.config['SQLALCHEMY_DATABASE_URI'] = os.getenv('SQLALCHEMY_DATABASE_URI', 'sqlite:///dorm_admin.db')
    app.config['SQLALCHEMY_TRACK_MODIFICATIONS'] = False
    app.config['FIRESTORE_PROJECT_ID'] = os.getenv('FIRESTORE_PROJECT_ID')
    app.config['FIRESTORE_DATABASE'] = os.getenv('FIRESTORE_DATABASE', '(default)')
    app.config['FIRESTORE_TOKEN'] = os.getenv('FIRESTORE_TOKEN')
    app.config['LOG_LEVEL'] = os.getenv('LOG_LEVEL', 'INFO')

    # --- Limits (seconds / rooms) ---
    app.config['STORE_TIMEOUT'] = float(os.getenv('STORE_TIMEOUT', '10'))
    app.config['PROVISIONING_DEADLINE'] = float(os.getenv('PROVISIONING_DEADLINE', '300'))
    app.config['ROOM_BATCH_LIMIT'] = int(os.getenv('ROOM_BATCH_LIMIT', '500'))

    # Upload config
    app.config['UPLOAD_FOLDER'] = os.getenv('UPLOAD_FOLDER', 'uploads')

    if overrides:
        app.config.update(overrides)


def make_store(app):
    backend = app.config['STORE_BACKEND']
    if backend == 'memory':
        return MemoryDocumentStore()
    if backend == 'firestore':
        return FirestoreDocumentStore(
            app.config['FIRESTORE_PROJECT_ID'],
            database=app.config['FIRESTORE_DATABASE'],
            token=app.config['FIRESTORE_TOKEN'],
            timeout=app.config['STORE_TIMEOUT'],
        )
    if backend == 'sql':
        db.init_app(app)
        with app.app_context():
            db.create_all()
        return SqlDocumentStore()
    raise ValueError(f"Unknown STORE_BACKEND: {backend}")


def create_app(overrides=None):
    app = Flask(__name__)
    load_config(app, overrides)

    logging.basicConfig(
        level=app.config['LOG_LEVEL'],
        format='%(asctime)s %(levelname)s %(name)s: %(message)s',
    )
    CORS(app)

    os.makedirs(app.config['UPLOAD_FOLDER'], exist_ok=True)
    app.extensions['docstore'] = make_store(app)
    app.logger.info("Using %s document store", app.config['STORE_BACKEND'])

    register_error_handlers(app)
    app.register_blueprint(rooms_bp)
    app.register_blueprint(payments_bp)

    @app.route('/uploads/<path:filename>')
    def serve_uploaded_file(filename):
        return send_from_directory(os.path.abspath(app.config['UPLOAD_FOLDER']), filename)

    @app.get('/healthz')
    def healthz():
        return {"ok": True}, 200

    return app


if __name__ == '__main__':
    create_app().run(port=int(os.getenv('PORT', '5000')), debug=True)

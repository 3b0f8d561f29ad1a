# models.py
import json

from flask_sqlalchemy import SQLAlchemy

db = SQLAlchemy()


class Document(db.Model):
    __tablename__ = 'documents'
    path = db.Column(db.String(500), primary_key=True)
    collection = db.Column(db.String(500), nullable=False, index=True)
    doc_id = db.Column(db.String(120), nullable=False)
    data = db.Column(db.Text, nullable=False, default='{}')  # JSON object
    created_at = db.Column(db.DateTime, server_default=db.func.now())
    updated_at = db.Column(db.DateTime, server_default=db.func.now(), onupdate=db.func.now())

    def to_dict(self):
        return json.loads(self.data) if self.data else {}

from datetime import datetime, timezone

from flask_sqlalchemy import SQLAlchemy
from werkzeug.security import check_password_hash, generate_password_hash

db = SQLAlchemy()


def _utcnow():
    return datetime.now(timezone.utc)


class User(db.Model):
    __tablename__ = 'users'

    id = db.Column(db.Integer, primary_key=True)
    username = db.Column(db.Text, unique=True, nullable=False)
    password = db.Column(db.Text, nullable=False)

    def set_password(self, raw_password):
        self.password = generate_password_hash(raw_password)

    def check_password(self, raw_password):
        return check_password_hash(self.password, raw_password)

    def __repr__(self):
        return f"<User {self.id} {self.username}>"


class CipherHistory(db.Model):
    """One encrypt/decrypt operation. Rows are never updated after insert."""
    __tablename__ = 'cipher_history'

    id = db.Column(db.Integer, primary_key=True)
    operation = db.Column(db.Text, nullable=False)  # 'encrypt' or 'decrypt'
    algorithm = db.Column(db.Text, nullable=False)
    mode = db.Column(db.Text, nullable=False)
    key_size = db.Column(db.Text, nullable=False)
    input_length = db.Column(db.Integer, nullable=False)
    output_length = db.Column(db.Integer, nullable=False)
    processing_time = db.Column(db.Text, nullable=False)
    input_text = db.Column(db.Text)
    output_text = db.Column(db.Text)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=_utcnow)
    user_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=True)

    def to_dict(self):
        return {
            'id': self.id,
            'operation': self.operation,
            'algorithm': self.algorithm,
            'mode': self.mode,
            'keySize': self.key_size,
            'inputLength': self.input_length,
            'outputLength': self.output_length,
            'processingTime': self.processing_time,
            'inputText': self.input_text,
            'outputText': self.output_text,
            'createdAt': self.created_at.isoformat() if self.created_at else None,
            'userId': self.user_id,
        }

    def __repr__(self):
        return f"<CipherHistory {self.id} {self.operation} {self.algorithm}>"

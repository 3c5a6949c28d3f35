from datetime import datetime
from models.db import db

class Setting(db.Model):
    __tablename__ = "settings"

    # one row per settings document, e.g. "working_hours"
    key = db.Column(db.String(64), primary_key=True)
    value_json = db.Column(db.Text, nullable=False)

    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

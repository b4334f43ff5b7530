from sqlalchemy.sql import func

from ..extensions import db


class SiteSetting(db.Model):
    """Singleton JSON documents keyed by name: homepage, about, contact."""
    __tablename__ = "site_setting"

    id = db.Column(db.Integer, primary_key=True)
    key = db.Column(db.String(64), nullable=False, unique=True, index=True)
    data = db.Column(db.JSON, nullable=False, default=dict)
    updated_at = db.Column(db.DateTime, onupdate=func.now(), server_default=func.now())

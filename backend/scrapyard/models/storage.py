from __future__ import annotations

from ..extensions import db
from scrapyard.time_utils import to_utc_z


class StoreRecord(db.Model):
    """
    Durable key-value record backing one store collection.

    WHY: The store keeps its collections in memory and writes them through
    after every mutation. Each namespace key ("scrapyard.orders", ...) maps
    to exactly one row holding the JSON-encoded list.

    DESIGN:
    - value is the full serialized collection, never a partial diff
    - version is bumped on every write and compared before the next one,
      so a second writer working from an older load is detected
    """
    __tablename__ = "store_records"

    key = db.Column(db.String(128), primary_key=True)
    value = db.Column(db.Text, nullable=False)
    version = db.Column(db.Integer, nullable=False, default=1)

    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    def __repr__(self) -> str:
        return f"<StoreRecord key={self.key!r} version={self.version}>"

    def to_dict(self) -> dict:
        return {
            "key": self.key,
            "version": self.version,
            "size": len(self.value or ""),
            "updated_at": to_utc_z(self.updated_at),
        }

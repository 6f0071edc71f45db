from __future__ import annotations

import datetime as dt
import json

from sqlalchemy import Column, DateTime, Integer, Text
from sqlalchemy.orm import declarative_base

Base = declarative_base()

STATE_ROW_ID = 1


class DrawStateRecord(Base):
    __tablename__ = "draw_state"

    id = Column(Integer, primary_key=True, default=STATE_ROW_ID)
    payload = Column(Text, nullable=False)
    version = Column(Integer, nullable=False, default=0)
    updated_at = Column(DateTime, default=dt.datetime.utcnow, onupdate=dt.datetime.utcnow, nullable=False)

    def set_payload(self, payload: dict) -> None:
        self.payload = json.dumps(payload)

    def get_payload(self) -> dict:
        return json.loads(self.payload)

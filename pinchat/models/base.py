from sqlalchemy import Column, Uuid
from sqlalchemy.ext.declarative import as_declarative
import uuid

@as_declarative()
class Base:
    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4, index=True)

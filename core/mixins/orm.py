import enum
import logging
import traceback
from datetime import UTC, datetime
from typing import Optional

from fastapi import HTTPException, status
from pydantic import BaseModel as PydanticModel
from sqlalchemy import Column, DateTime, String
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, declared_attr


logger = logging.getLogger(__name__)


class DeleteResponse(PydanticModel):
    success: bool


def _integrity_error_detail(e: IntegrityError) -> str:
    message = str(e.orig)
    # postgres puts the useful part after DETAIL, other drivers return one line
    if "DETAIL:  " in message:
        return message.split("DETAIL:  ")[1].strip()
    return message


class ORMBaseMixin(object):
    __mapper__ = None

    @declared_attr
    def __tablename__(cls):
        return cls.__name__.lower()

    created_at = Column(DateTime, default=lambda x: datetime.now(UTC))
    updated_at = Column(
        DateTime,
        default=lambda x: datetime.now(UTC),
        onupdate=lambda x: datetime.now(UTC),
    )
    string_id = Column(String, unique=True)

    def __repr__(self):
        if hasattr(self, "name"):
            identifier = getattr(self, "name", None)
        elif hasattr(self, "registration_number"):
            identifier = getattr(self, "registration_number", None)
        else:
            identifier = ""

        if hasattr(self, "string_id") and self.string_id:
            return f"<{self.__class__.__name__.replace('Model', '')}: {identifier} (id {self.string_id})>"
        elif hasattr(self, "id"):
            return f"<{self.__class__.__name__.replace('Model', '')}: {identifier} (id {self.id})>"

        return f"<{self.__class__.__name__.replace('Model', '')}: {identifier}"

    def __str__(self):
        return self.__repr__()

    @classmethod
    def create(
        cls,
        db: Session,
        values: dict,
        commit: Optional[bool] = True,
        *args,
        **kwargs,
    ) -> "ORMBaseMixin":
        try:
            # check if field is defined in class, if not pop it
            to_pop = [key for key in values if not hasattr(cls, key)]
            for key in to_pop:
                values.pop(key)

            instance = cls(**values)
            db.add(instance)

            if commit:
                db.commit()
                db.refresh(instance)
            else:
                db.flush()

            return instance
        # catch unique constraint violation
        except IntegrityError as e:
            db.rollback()
            detail = _integrity_error_detail(e)
            logger.error(
                f"Error creating record: {detail}\nFull traceback: {traceback.format_exc()}"
            )
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=f"Error creating record: {detail}",
            )
        except Exception:
            db.rollback()
            logger.error(f"Error creating record: {traceback.format_exc()}")
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail="An error occurred!",
            )

    def update(
        self,
        db: Session,
        values: dict,
        commit: Optional[bool] = True,
        *args,
        **kwargs,
    ) -> "ORMBaseMixin":
        try:
            for field, value in values.items():
                if hasattr(self, field):
                    setattr(self, field, value)

            if commit:
                db.commit()
                db.refresh(self)

            return self
        # catch unique constraint violation
        except IntegrityError as e:
            if commit:
                db.rollback()
            detail = _integrity_error_detail(e)
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=f"Error updating record: {detail}",
            )
        except Exception:
            if commit:
                db.rollback()
            logger.error(f"Error updating record: {traceback.format_exc()}")
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail="An error occurred!",
            )

    def delete(
        self,
        db: Session,
        commit: Optional[bool] = True,
        *args,
        **kwargs,
    ) -> DeleteResponse:
        try:
            db.delete(self)
            if commit:
                db.commit()
            return DeleteResponse(success=True)

        except IntegrityError as e:
            if commit:
                db.rollback()
            detail = _integrity_error_detail(e)
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=f"Error deleting record: {detail}",
            )
        except Exception:
            if commit:
                db.rollback()
            logger.error(f"Error deleting record: {traceback.format_exc()}")
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail="An error occurred!",
            )

    @classmethod
    def get_one(cls, db: Session, item_id: int, *args, **kwargs) -> Optional["ORMBaseMixin"]:
        return db.get(cls, item_id)

    @classmethod
    def get_all(
        cls, db: Session, skip: int = 0, limit: Optional[int] = None, *args, **kwargs
    ) -> list["ORMBaseMixin"]:
        query = db.query(cls).order_by(cls.id)
        if skip:
            query = query.offset(skip)
        if limit is not None:
            query = query.limit(limit)
        return query.all()

    def serialize(self) -> dict:
        result = self.__dict__.copy()
        # Convert Enum values to their actual string values
        # instead of the Enum object key
        for key, value in self.__dict__.items():
            if isinstance(value, enum.Enum):
                result[key] = value.value
            elif isinstance(value, datetime):
                result[key] = value.isoformat()
        # Remove the SQLAlchemy internal state from the records
        result.pop("_sa_instance_state", None)
        return result

from typing import Optional, Type, TypeVar

from sqlalchemy.orm import Session

from backoffice.core.errors import NotFound

T = TypeVar("T")


def get_owned(db: Session, model: Type[T], entity_id: Optional[int], tenant_id: int, label: Optional[str] = None) -> T:
    """
    Fetch a tenant-owned row by primary key.

    Rows belonging to another tenant are reported exactly like missing rows.
    """
    name = label or model.__name__
    if entity_id is None:
        raise NotFound(name, entity_id)
    pk = model.__mapper__.primary_key[0]
    obj = (
        db.query(model)
        .filter(pk == entity_id, model.user_id == tenant_id)
        .first()
    )
    if not obj:
        raise NotFound(name, entity_id)
    return obj


def owns(db: Session, model: Type[T], entity_id: Optional[int], tenant_id: int) -> bool:
    if entity_id is None:
        return False
    pk = model.__mapper__.primary_key[0]
    return (
        db.query(pk)
        .filter(pk == entity_id, model.user_id == tenant_id)
        .first()
        is not None
    )

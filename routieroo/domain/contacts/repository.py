"""Contact repository - Database operations for contacts"""

from typing import Optional

from sqlalchemy.orm import Session

from ...models import Contact


class ContactRepository:
    """Repository for contact database operations"""

    @staticmethod
    def get_by_id(db: Session, contact_id: int, user_id: int) -> Optional[Contact]:
        return db.query(Contact).filter(Contact.id == contact_id, Contact.user_id == user_id).first()

    @staticmethod
    def get_by_resource_name(db: Session, user_id: int, resource_name: str) -> Optional[Contact]:
        return (
            db.query(Contact)
            .filter(Contact.user_id == user_id, Contact.google_resource_name == resource_name)
            .first()
        )

    @staticmethod
    def get_user_contacts(db: Session, user_id: int, active_only: bool = False) -> list[Contact]:
        query = db.query(Contact).filter(Contact.user_id == user_id)
        if active_only:
            query = query.filter(Contact.is_active.is_(True))
        return query.order_by(Contact.name, Contact.id).all()

    @staticmethod
    def get_changed_addresses(db: Session, user_id: int) -> list[Contact]:
        return (
            db.query(Contact)
            .filter(Contact.user_id == user_id, Contact.address_modified.is_(True))
            .order_by(Contact.address_modified_at.desc())
            .all()
        )

    @staticmethod
    def create(db: Session, contact: Contact) -> Contact:
        db.add(contact)
        db.commit()
        db.refresh(contact)
        return contact

    @staticmethod
    def update(db: Session, contact: Contact) -> Contact:
        db.commit()
        db.refresh(contact)
        return contact

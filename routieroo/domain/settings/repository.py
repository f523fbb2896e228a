"""Settings repository - per-user lookup tables (stop types, folders, ...)"""

from typing import Optional

from sqlalchemy.orm import Session

from ...models import CommentOption, Folder, ImportantDateType, Route, SavedStartingPoint, StopType


class SettingsRepository:
    """Repository for user-owned settings rows"""

    @staticmethod
    def list_for_user(db: Session, model, user_id: int, order_by) -> list:
        return db.query(model).filter(model.user_id == user_id).order_by(order_by, model.id).all()

    @staticmethod
    def get_for_user(db: Session, model, obj_id: int, user_id: int) -> Optional[object]:
        return db.query(model).filter(model.id == obj_id, model.user_id == user_id).first()

    @staticmethod
    def get_stop_types(db: Session, user_id: int) -> list[StopType]:
        return SettingsRepository.list_for_user(db, StopType, user_id, StopType.name)

    @staticmethod
    def get_starting_points(db: Session, user_id: int) -> list[SavedStartingPoint]:
        return SettingsRepository.list_for_user(db, SavedStartingPoint, user_id, SavedStartingPoint.name)

    @staticmethod
    def get_folders(db: Session, user_id: int) -> list[Folder]:
        return SettingsRepository.list_for_user(db, Folder, user_id, Folder.name)

    @staticmethod
    def get_comment_options(db: Session, user_id: int) -> list[CommentOption]:
        return SettingsRepository.list_for_user(db, CommentOption, user_id, CommentOption.option)

    @staticmethod
    def get_important_date_types(db: Session, user_id: int) -> list[ImportantDateType]:
        return SettingsRepository.list_for_user(db, ImportantDateType, user_id, ImportantDateType.name)

    @staticmethod
    def comment_option_exists(db: Session, user_id: int, option: str) -> bool:
        return (
            db.query(CommentOption.id)
            .filter(CommentOption.user_id == user_id, CommentOption.option == option)
            .first()
            is not None
        )

    @staticmethod
    def important_date_type_exists(db: Session, user_id: int, name: str) -> bool:
        return (
            db.query(ImportantDateType.id)
            .filter(ImportantDateType.user_id == user_id, ImportantDateType.name == name)
            .first()
            is not None
        )

    @staticmethod
    def clear_default_stop_type(db: Session, user_id: int, keep_id: Optional[int] = None) -> None:
        defaults = db.query(StopType).filter(StopType.user_id == user_id, StopType.is_default.is_(True))
        for stop_type in defaults:
            if stop_type.id != keep_id:
                stop_type.is_default = False

    @staticmethod
    def detach_folder(db: Session, folder_id: int) -> None:
        db.query(Route).filter(Route.folder_id == folder_id).update(
            {Route.folder_id: None}, synchronize_session=False
        )

    @staticmethod
    def create(db: Session, obj):
        db.add(obj)
        db.commit()
        db.refresh(obj)
        return obj

    @staticmethod
    def update(db: Session, obj):
        db.commit()
        db.refresh(obj)
        return obj

    @staticmethod
    def delete(db: Session, obj) -> None:
        db.delete(obj)
        db.commit()

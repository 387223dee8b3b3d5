from .db_manager import DbManager

__all__ = ["DbManager"]

from .data_template import DEFAULT_DATA_TEMPLATE
from .seed_db import seed_db, build_records, write_records_to_csv

__all__ = ["seed_db", "build_records", "write_records_to_csv", "DEFAULT_DATA_TEMPLATE"]

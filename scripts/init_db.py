"""Creates the data directory and an empty orders table file."""
from orderflow.config import configure_logging, settings
from orderflow.database import db
from orderflow.models.order import ORDER_COLUMNS


configure_logging()

path = db._file_path("orders")
if not path.exists():
    db.ensure_table("orders", ORDER_COLUMNS)
    print(f'Created {path}')
else:
    print(f'{path} already exists (DATA_DIR={settings.DATA_DIR})')

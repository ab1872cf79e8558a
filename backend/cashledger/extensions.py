# Overview: Shared Flask extensions; models bind to `db`, `flask db` commands come from `migrate`.

from flask_sqlalchemy import SQLAlchemy
from flask_migrate import Migrate

db = SQLAlchemy()
migrate = Migrate(compare_type=True)

from typing import List

from sqlalchemy import select
from sqlalchemy.orm import Session

import models


def get_all_users(db: Session) -> List[models.User]:
    return db.scalars(select(models.User).order_by(models.User.id)).all()

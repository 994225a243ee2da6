from typing import List
from sqlalchemy.orm import Session

from translation_practice.models.review_record import ReviewRecordModel
from translation_practice.repositories.base import BaseRepository

class ReviewRecordRepository(BaseRepository[ReviewRecordModel]):
    def __init__(self, db: Session):
        super().__init__(db, ReviewRecordModel)

    def get_all_records(self) -> List[ReviewRecordModel]:
        """获取全部复习记录"""
        return self.db.query(ReviewRecordModel).order_by(ReviewRecordModel.next_review_date.asc()).all()


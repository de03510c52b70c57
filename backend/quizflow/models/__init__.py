"""
SQLAlchemy models. Import here so create_all and the app can use them.
"""
from quizflow.models.user import User
from quizflow.models.file_upload import FileUpload
from quizflow.models.quiz import Quiz
from quizflow.models.usage_record import UsageRecord

__all__ = ["User", "FileUpload", "Quiz", "UsageRecord"]

"""
LMS Models.

Exports all SQLAlchemy models for easy importing.
"""

# Account
from .account import AccountModel, AccountUserModel

# Asset processor
from .asset_processor import AssetProcessorModel, AssetProcessorNoticeModel

# Assignment / submission
from .assignment import AssignmentModel, SubmissionModel, SubmissionVersionModel
from .base import Base, TimestampMixin

# Course
from .course import (
    CourseModel,
    EnrollmentModel,
    EnrollmentType,
    GroupMembershipModel,
    GroupModel,
)

# Launch audit log
from .launch_log import LtiLaunchLogModel

# Tool
from .tool import LTI_1_1, LTI_1_3, ContextExternalToolModel

# User
from .user import PseudonymModel, UserModel

__all__ = [
    "Base",
    "TimestampMixin",
    "AccountModel",
    "AccountUserModel",
    "AssetProcessorModel",
    "AssetProcessorNoticeModel",
    "AssignmentModel",
    "SubmissionModel",
    "SubmissionVersionModel",
    "CourseModel",
    "EnrollmentModel",
    "EnrollmentType",
    "GroupModel",
    "GroupMembershipModel",
    "LtiLaunchLogModel",
    "ContextExternalToolModel",
    "LTI_1_1",
    "LTI_1_3",
    "PseudonymModel",
    "UserModel",
]

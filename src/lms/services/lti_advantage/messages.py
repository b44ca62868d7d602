"""
LTI 1.3 message types, claim names and role vocabularies.
"""

from enum import Enum

from lms.models import EnrollmentType

LTI_VERSION = "1.3.0"


class MessageType(str, Enum):
    """Message types the LMS launches tools with outside of resource links."""

    ASSET_PROCESSOR_SETTINGS = "LtiAssetProcessorSettingsRequest"
    REPORT_REVIEW = "LtiReportReviewRequest"
    EULA = "LtiEulaRequest"


class LaunchType(str, Enum):
    """How a launch was initiated, as recorded in the launch log."""

    DIRECT_LINK = "direct_link"
    CONTENT_ITEM = "content_item"
    INDIRECT_LINK = "indirect_link"


_LTI = "https://purl.imsglobal.org/spec/lti/claim/"

CLAIM_MESSAGE_TYPE = _LTI + "message_type"
CLAIM_VERSION = _LTI + "version"
CLAIM_DEPLOYMENT_ID = _LTI + "deployment_id"
CLAIM_TARGET_LINK_URI = _LTI + "target_link_uri"
CLAIM_ROLES = _LTI + "roles"
CLAIM_CONTEXT = _LTI + "context"
CLAIM_TOOL_PLATFORM = _LTI + "tool_platform"
CLAIM_LAUNCH_PRESENTATION = _LTI + "launch_presentation"
CLAIM_CUSTOM = _LTI + "custom"
CLAIM_ACTIVITY = _LTI + "activity"
CLAIM_SUBMISSION = _LTI + "submission"
CLAIM_FOR_USER = _LTI + "for_user"
CLAIM_ASSET = _LTI + "asset"

CONTEXT_TYPE_COURSE = "http://purl.imsglobal.org/vocab/lis/v2/course#CourseOffering"

_MEMBERSHIP = "http://purl.imsglobal.org/vocab/lis/v2/membership#"
ROLE_INSTRUCTOR = _MEMBERSHIP + "Instructor"
ROLE_LEARNER = _MEMBERSHIP + "Learner"
ROLE_CONTENT_DEVELOPER = _MEMBERSHIP + "ContentDeveloper"
ROLE_MENTOR = _MEMBERSHIP + "Mentor"
ROLE_TEACHING_ASSISTANT = "http://purl.imsglobal.org/vocab/lis/v2/membership/Instructor#TeachingAssistant"
ROLE_SYSTEM_USER = "http://purl.imsglobal.org/vocab/lis/v2/system/person#User"

ENROLLMENT_ROLES: dict[str, tuple[str, ...]] = {
    EnrollmentType.TEACHER: (ROLE_INSTRUCTOR,),
    EnrollmentType.TA: (ROLE_INSTRUCTOR, ROLE_TEACHING_ASSISTANT),
    EnrollmentType.DESIGNER: (ROLE_CONTENT_DEVELOPER,),
    EnrollmentType.STUDENT: (ROLE_LEARNER,),
    EnrollmentType.OBSERVER: (ROLE_MENTOR,),
}


def lti_roles(enrollment_types: list[str], has_user: bool = True) -> list[str]:
    """Map enrollment types to LIS role URIs, without duplicates."""
    roles: list[str] = []
    for enrollment_type in enrollment_types:
        roles.extend(ENROLLMENT_ROLES.get(enrollment_type, ()))
    if has_user:
        roles.append(ROLE_SYSTEM_USER)
    return list(dict.fromkeys(roles))

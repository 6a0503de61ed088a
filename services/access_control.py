"""
Access-Control Decision Points
==============================

Pure rules deciding what a principal may do with a prompt. They do no
I/O: callers resolve facts such as the follow relationship first and
pass them in. Each rule returns `Ok(None)` or an `Err` of a specific kind.
"""

from typing import Optional

from core.enums import ErrorKind, PrivacyLevel
from core.models import Comment, Prompt, User
from core.result import Err, Ok, Result


def is_owner(prompt: Prompt, user: Optional[User]) -> bool:
    return user is not None and user.id == prompt.creator_id


def can_view(prompt: Prompt, requester: Optional[User], *, is_follower: bool = False) -> Result[None]:
    """
    Detail view.

    Public prompts are visible to everyone, private ones only to their
    creator, followers-only ones to the creator and the creator's
    followers. Blocked prompts are hidden from everyone but the creator
    and admins.
    """
    owner = is_owner(prompt, requester)

    if not prompt.is_active and not owner and not (requester and requester.is_admin):
        return Err(ErrorKind.ACCESS_DENIED, "Access denied", ["This prompt has been blocked"])

    if prompt.privacy is PrivacyLevel.PUBLIC or owner:
        return Ok(None)

    if prompt.privacy is PrivacyLevel.FOLLOWERS:
        if requester is not None and is_follower:
            return Ok(None)
        return Err(
            ErrorKind.ACCESS_DENIED,
            "Access denied",
            ["This prompt is only visible to the creator's followers"],
        )

    return Err(ErrorKind.ACCESS_DENIED, "Access denied", ["This prompt is private"])


def can_copy(prompt: Prompt, requester: Optional[User], *, is_follower: bool = False) -> Result[None]:
    """
    Copy (decrypt) access: authentication, then the view rule.

    Paid prompts are granted without payment verification. Payment
    processing is not integrated; callers log the grant so it stays
    visible until it is.
    """
    if requester is None:
        return Err(ErrorKind.AUTHENTICATION_REQUIRED, "Authentication required", ["User not authenticated"])
    return can_view(prompt, requester, is_follower=is_follower)


def requires_payment(prompt: Prompt, requester: User) -> bool:
    """True when a copy would need payment verification."""
    return prompt.is_paid and prompt.price > 0 and not is_owner(prompt, requester)


def can_modify(prompt: Prompt, user: Optional[User], *, elevated: bool = False) -> Result[None]:
    """
    Update or delete.

    Strict ownership for the regular path; `elevated` is the admin path
    and requires the admin role.
    """
    if user is None:
        return Err(ErrorKind.AUTHENTICATION_REQUIRED, "Authentication required", ["User not authenticated"])
    if is_owner(prompt, user):
        return Ok(None)
    if elevated and user.is_admin:
        return Ok(None)
    return Err(ErrorKind.ACCESS_DENIED, "Access denied", ["You can only modify your own prompts"])


def can_create_paid(user: User) -> Result[None]:
    if user.monetization_unlocked:
        return Ok(None)
    return Err(ErrorKind.MONETIZATION_NOT_UNLOCKED)


def can_administer(user: Optional[User]) -> Result[None]:
    if user is None:
        return Err(ErrorKind.AUTHENTICATION_REQUIRED, "Authentication required")
    if not user.is_admin:
        return Err(ErrorKind.ACCESS_DENIED, "Access denied", ["Admin privileges required"])
    return Ok(None)


def can_delete_comment(comment: Comment, user: User) -> Result[None]:
    """Comment authors remove their own comments; admins remove any."""
    if comment.user_id == user.id or user.is_admin:
        return Ok(None)
    return Err(ErrorKind.ACCESS_DENIED, "Access denied", ["You can only delete your own comments"])

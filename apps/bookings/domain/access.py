"""Who may see or act on a booking."""

STUDENT = "student"
OWNER = "owner"
ADMIN = "admin"


def can_access(booking, user_id: int, role: str) -> bool:
    """
    The student who made the booking, the owner of the listing and
    administrators may see and cancel a booking.
    """
    if role == ADMIN:
        return True
    if role == OWNER and booking.listing.owner_id == user_id:
        return True
    return booking.student_id == user_id

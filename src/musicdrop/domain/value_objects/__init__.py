"""Value objects and pure input rules."""

from musicdrop.domain.value_objects.user_directories import UserDirectories

__all__ = ["UserDirectories"]

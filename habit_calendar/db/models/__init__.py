from .habit import Habit, HabitColor, HabitDay
from .fire_time import FireTime
from .notification import Notification

__all__ = [
    "Habit",
    "HabitColor",
    "HabitDay",
    "FireTime",
    "Notification",
]

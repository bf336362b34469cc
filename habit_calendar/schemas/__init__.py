from .habit import FireTimeIn, HabitCreate, HabitEdit

__all__ = [
    "FireTimeIn",
    "HabitCreate",
    "HabitEdit",
]

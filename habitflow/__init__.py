"""HabitFlow - habit and task tracking with streaks and completion analytics"""

__version__ = "1.0.0"

"""Habit tracker with locally scheduled daily reminders."""

from habitflow.domains.days.models.day_models import Day, DayHabit

__all__ = ["Day", "DayHabit"]

"""Social Scheduler API: plan, schedule and publish social media posts."""

__version__ = "1.0.0"

"""Bounded-concurrency job scheduling."""

from .job_queue import JobScheduler, JobState, SchedulerResult

__all__ = ["JobScheduler", "JobState", "SchedulerResult"]

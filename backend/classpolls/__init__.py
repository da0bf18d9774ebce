"""Classroom allocation polling: student submissions and a live results dashboard."""

"""Inline suggestion review for tailored resumes."""

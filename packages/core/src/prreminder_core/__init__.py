"""Bitbucket Server pull request reminders for Slack."""

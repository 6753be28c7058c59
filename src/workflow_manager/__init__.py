"""Workflow manager - task coordination for a staffing pool and its brand clients."""

"""Docker Compose test harness."""

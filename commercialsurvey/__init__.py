"""Django project package for the Commercial Survey application."""

"""Navigation deep-link services."""

from .links import PLACEHOLDER_LINK, build_google_maps_url, build_waze_url, plan_navigation_waypoints

__all__ = ["PLACEHOLDER_LINK", "build_google_maps_url", "build_waze_url", "plan_navigation_waypoints"]

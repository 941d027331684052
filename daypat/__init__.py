"""DayPat diary export: paginated page images from diary entries."""

from daypat.logger import register_levels

register_levels()

"""Bot DNA model and its live mirror."""

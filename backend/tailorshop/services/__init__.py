"""Business services for the tailor shop rental backend."""

"""CommuteWise route console backend."""

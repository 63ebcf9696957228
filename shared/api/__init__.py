"""HTTP edge helpers shared by the reservation apps."""

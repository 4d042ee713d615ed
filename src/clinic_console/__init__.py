"""Client-side data access for the clinic administration console."""

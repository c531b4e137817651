"""Studio class booking: per-slot admission control with a FIFO waitlist."""

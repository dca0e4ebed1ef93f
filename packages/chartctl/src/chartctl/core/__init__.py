"""Runtime primitives shared by every chartctl command."""

"""Command line tools for inspecting ROWA vesting state."""

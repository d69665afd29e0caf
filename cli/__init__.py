"""Command line tools for building and inspecting the almanac."""

"""PerfHub: employee performance tracking over a realtime record store."""

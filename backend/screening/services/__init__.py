# Services module initialization

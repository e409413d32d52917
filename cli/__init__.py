"""CLI package for replaying recorded CO2 readings through a sensor group."""

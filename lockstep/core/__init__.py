"""Core subsystems: process guard, git gate, check suite, snapshots, orchestrator."""

"""Helpers for wiring FishTales components together"""

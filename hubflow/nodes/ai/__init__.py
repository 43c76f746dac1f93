"""AI nodes"""

"""integration nodes"""

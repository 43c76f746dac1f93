"""control flow nodes"""

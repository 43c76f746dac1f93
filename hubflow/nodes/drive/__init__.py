"""Drive operation nodes"""

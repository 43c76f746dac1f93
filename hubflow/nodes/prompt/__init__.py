"""interactive prompt nodes"""

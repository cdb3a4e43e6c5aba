"""Qt presentation layer"""

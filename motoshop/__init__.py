"""Motorcycle workshop appointment scheduling service"""

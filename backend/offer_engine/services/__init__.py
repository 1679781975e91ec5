"""Offer Engine - Services"""

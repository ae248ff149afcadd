"""Shooting incident pipeline tests"""

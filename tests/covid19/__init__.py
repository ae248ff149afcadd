"""COVID-19 pipeline tests"""

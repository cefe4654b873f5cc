"""License Plate Recorder dashboard package"""

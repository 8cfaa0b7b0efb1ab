import_order = [
    'vehicle.csv',
]

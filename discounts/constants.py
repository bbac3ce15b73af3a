WEEKDAYS: tuple[str, ...] = ('monday', 'tuesday', 'wednesday', 'thursday', 'friday', 'saturday', 'sunday')


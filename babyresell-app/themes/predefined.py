"""
Palettes that can be activated by name without being created first
"""

PREDEFINED_THEMES = {
    'spring': {
        'display_name': 'Spring Bloom',
        'colors': {
            'primary': '#10b981',
            'secondary': '#d1fae5',
            'accent': '#34d399',
            'background': '#ecfdf5',
            'cardBackground': '#ffffff',
            'text': '#065f46',
            'textSecondary': '#6b7280',
        },
        'is_seasonal': True,
    },
    'summer': {
        'display_name': 'Summer Vibes',
        'colors': {
            'primary': '#f59e0b',
            'secondary': '#fef3c7',
            'accent': '#fb923c',
            'background': '#fffbeb',
            'cardBackground': '#ffffff',
            'text': '#92400e',
            'textSecondary': '#6b7280',
        },
        'is_seasonal': True,
    },
    'fall': {
        'display_name': 'Autumn Harvest',
        'colors': {
            'primary': '#ea580c',
            'secondary': '#fed7aa',
            'accent': '#fb923c',
            'background': '#fff7ed',
            'cardBackground': '#ffffff',
            'text': '#9a3412',
            'textSecondary': '#6b7280',
        },
        'is_seasonal': True,
    },
    'winter': {
        'display_name': 'Winter Wonderland',
        'colors': {
            'primary': '#0ea5e9',
            'secondary': '#e0f2fe',
            'accent': '#38bdf8',
            'background': '#f0f9ff',
            'cardBackground': '#ffffff',
            'text': '#0c4a6e',
            'textSecondary': '#6b7280',
        },
        'is_seasonal': True,
    },
    'christmas': {
        'display_name': 'Christmas Magic',
        'colors': {
            'primary': '#dc2626',
            'secondary': '#fecaca',
            'accent': '#ef4444',
            'background': '#fef2f2',
            'cardBackground': '#ffffff',
            'text': '#991b1b',
            'textSecondary': '#6b7280',
        },
        'is_holiday': True,
        'is_seasonal': False,
    },
    'dark': {
        'display_name': 'Dark Mode',
        'colors': {
            'primary': '#e60023',
            'secondary': '#2e2e2e',
            'accent': '#e2336b',
            'background': '#121212',
            'cardBackground': '#1e1e1e',
            'text': '#ffffff',
            'textSecondary': '#b0b0b0',
        },
        'is_seasonal': False,
    },
}

"""
Default values of every settings section.

Keys are camelCase since they are exchanged as-is with the admin dashboard.
"""

GENERAL = {
    'siteName': 'BabyResell',
    'siteDescription': 'A marketplace for parents to buy and sell pre-loved baby items',
    'supportEmail': 'support@babyresell.com',
    'contactPhone': '',
    'address': '',
    'timezone': 'America/Los_Angeles',
    'language': 'en',
    'maintenanceMode': False,
    'socialMedia': {
        'facebook': '',
        'twitter': '',
        'instagram': '',
    },
}

NOTIFICATIONS = {
    'emailNotifications': True,
    'pushNotifications': True,
    'smsNotifications': False,
    'transactionAlerts': True,
    'securityAlerts': True,
    'marketingEmails': False,
    'newUserNotifications': True,
    'lowStockAlerts': False,
    'dailyReports': False,
    'weeklyReports': True,
}

PAYMENTS = {
    'stripePublicKey': '',
    'stripeSecretKey': '',
    'paypalClientId': '',
    'paypalSecretKey': '',
    'transactionFeePercent': 8.0,
    'premiumFeePercent': 5.0,
    'minimumPayout': 25.00,
    'payoutSchedule': 'weekly',
    'currency': 'USD',
    'taxEnabled': False,
    'taxRate': 0,
}

SECURITY = {
    'twoFactorRequired': False,
    'sessionTimeout': 30,
    'passwordMinLength': 8,
    'maxLoginAttempts': 5,
    'accountLockoutDuration': 15,
    'requireStrongPassword': True,
    'requireEmailVerification': True,
    'ipWhitelisting': False,
    'allowedIPs': [],
    'enableCaptcha': False,
}

CONTENT = {
    'autoModeratePosts': True,
    'requirePostApproval': False,
    'maxImagesPerListing': 8,
    'maxDescriptionLength': 1000,
    'allowGuestBrowsing': True,
    'minListingPrice': 1.00,
    'maxListingPrice': 9999.99,
    'enableCategories': True,
    'enableTags': True,
    'enableReviews': True,
    'moderationKeywords': [],
}

SECTIONS = {
    'general': GENERAL,
    'notifications': NOTIFICATIONS,
    'payments': PAYMENTS,
    'security': SECURITY,
    'content': CONTENT,
}

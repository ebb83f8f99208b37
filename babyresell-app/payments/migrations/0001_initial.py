from decimal import Decimal

from django.conf import settings
from django.db import migrations, models
import django.core.validators
import django.db.models.deletion


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
        ('accounts', '0001_initial'),
    ]

    operations = [
        migrations.CreateModel(
            name='Transaction',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('amount', models.DecimalField(decimal_places=2, max_digits=10, verbose_name='Amount')),
                ('currency', models.CharField(choices=[('USD', 'USD'), ('EUR', 'EUR'), ('GBP', 'GBP'), ('JPY', 'JPY')], default='USD', max_length=3, verbose_name='Currency')),
                ('platform_fee', models.DecimalField(decimal_places=2, max_digits=10, verbose_name='Platform fee')),
                ('platform_fee_percentage', models.DecimalField(decimal_places=2, default=Decimal('8'), max_digits=5, verbose_name='Platform fee (%)')),
                ('seller_payout', models.DecimalField(decimal_places=2, max_digits=10, verbose_name='Seller payout')),
                ('stripe_fee', models.DecimalField(decimal_places=2, max_digits=10, verbose_name='Stripe fee')),
                ('net_revenue', models.DecimalField(decimal_places=2, max_digits=10, verbose_name='Net platform revenue')),
                ('payout_status', models.CharField(choices=[('pending', 'Pending'), ('processing', 'Processing'), ('completed', 'Completed'), ('failed', 'Failed')], default='pending', max_length=20, verbose_name='Payout status')),
                ('stripe_transfer_id', models.CharField(blank=True, max_length=100, null=True, verbose_name='Stripe transfer')),
                ('payout_error', models.TextField(blank=True, null=True, verbose_name='Payout error')),
                ('status', models.CharField(choices=[('pending', 'Payment held'), ('shipped', 'Shipped'), ('delivered', 'Delivered'), ('completed', 'Completed'), ('disputed', 'Disputed'), ('refunded', 'Refunded'), ('cancelled', 'Cancelled'), ('failed', 'Failed')], default='pending', max_length=20, verbose_name='Status')),
                ('escrow_status', models.CharField(choices=[('held', 'Held'), ('released', 'Released'), ('auto_released', 'Auto released'), ('refunded', 'Refunded')], default='held', max_length=20, verbose_name='Escrow status')),
                ('payment_method', models.CharField(max_length=50, verbose_name='Payment method')),
                ('payment_id', models.CharField(help_text='Stripe PaymentIntent id', max_length=100, unique=True, verbose_name='Payment intent')),
                ('shipping_name', models.CharField(max_length=200, verbose_name='Recipient')),
                ('shipping_line1', models.CharField(max_length=200, verbose_name='Address line 1')),
                ('shipping_line2', models.CharField(blank=True, default='', max_length=200, verbose_name='Address line 2')),
                ('shipping_city', models.CharField(max_length=100, verbose_name='City')),
                ('shipping_state', models.CharField(max_length=100, verbose_name='State')),
                ('shipping_country', models.CharField(default='US', max_length=2, verbose_name='Country')),
                ('shipping_postal_code', models.CharField(max_length=20, verbose_name='Postal code')),
                ('tracking_number', models.CharField(blank=True, max_length=100, null=True, verbose_name='Tracking number')),
                ('carrier', models.CharField(blank=True, choices=[('usps', 'USPS'), ('ups', 'UPS'), ('fedex', 'FedEx'), ('dhl', 'DHL'), ('other', 'Other')], max_length=10, null=True, verbose_name='Carrier')),
                ('shipped_at', models.DateTimeField(blank=True, null=True, verbose_name='Shipped at')),
                ('delivered_at', models.DateTimeField(blank=True, null=True, verbose_name='Delivered at')),
                ('delivery_confirmed_at', models.DateTimeField(blank=True, null=True, verbose_name='Delivery confirmed at')),
                ('escrow_release_date', models.DateTimeField(blank=True, null=True, verbose_name='Escrow released at')),
                ('auto_release_date', models.DateTimeField(blank=True, null=True, verbose_name='Auto release date')),
                ('notes', models.TextField(blank=True, null=True, verbose_name='Notes')),
                ('dispute_active', models.BooleanField(default=False, verbose_name='Dispute open')),
                ('dispute_reason', models.CharField(blank=True, choices=[('not_as_described', 'Not as described'), ('not_received', 'Not received'), ('damaged', 'Damaged'), ('other', 'Other')], max_length=20, null=True, verbose_name='Dispute reason')),
                ('dispute_description', models.TextField(blank=True, null=True, verbose_name='Dispute description')),
                ('dispute_created_at', models.DateTimeField(blank=True, null=True, verbose_name='Dispute opened at')),
                ('dispute_resolved_at', models.DateTimeField(blank=True, null=True, verbose_name='Dispute resolved at')),
                ('dispute_resolution', models.TextField(blank=True, null=True, verbose_name='Dispute resolution')),
                ('stripe_dispute_id', models.CharField(blank=True, max_length=100, null=True, verbose_name='Stripe dispute')),
                ('rating_enabled', models.BooleanField(default=False, verbose_name='Rating enabled')),
                ('buyer_rating', models.PositiveSmallIntegerField(blank=True, null=True, validators=[django.core.validators.MinValueValidator(1), django.core.validators.MaxValueValidator(5)], verbose_name='Rating by buyer')),
                ('buyer_rating_comment', models.TextField(blank=True, null=True, verbose_name='Buyer comment')),
                ('buyer_rated_at', models.DateTimeField(blank=True, null=True)),
                ('seller_rating', models.PositiveSmallIntegerField(blank=True, null=True, validators=[django.core.validators.MinValueValidator(1), django.core.validators.MaxValueValidator(5)], verbose_name='Rating by seller')),
                ('seller_rating_comment', models.TextField(blank=True, null=True, verbose_name='Seller comment')),
                ('seller_rated_at', models.DateTimeField(blank=True, null=True)),
                ('created_at', models.DateTimeField(auto_now_add=True, verbose_name='Created')),
                ('updated_at', models.DateTimeField(auto_now=True, verbose_name='Updated')),
                ('buyer', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='purchases', to=settings.AUTH_USER_MODEL, verbose_name='Buyer')),
                ('dispute_created_by', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='+', to=settings.AUTH_USER_MODEL, verbose_name='Dispute opened by')),
                ('item', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='transactions', to='accounts.babyitem', verbose_name='Item')),
                ('seller', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='sales', to=settings.AUTH_USER_MODEL, verbose_name='Seller')),
            ],
            options={
                'verbose_name': 'Transaction',
                'verbose_name_plural': 'Transactions',
                'ordering': ('-created_at',),
            },
        ),
        migrations.CreateModel(
            name='StripeWebhookLog',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('event_id', models.CharField(blank=True, max_length=100, null=True, verbose_name='Event id')),
                ('event_type', models.CharField(blank=True, max_length=100, null=True, verbose_name='Event type')),
                ('payload', models.JSONField(blank=True, default=dict, verbose_name='Payload')),
                ('signature', models.CharField(blank=True, default='', max_length=500, verbose_name='Signature')),
                ('is_valid', models.BooleanField(default=False, verbose_name='Valid signature')),
                ('processed', models.BooleanField(default=False, verbose_name='Processed')),
                ('error_message', models.TextField(blank=True, null=True, verbose_name='Error')),
                ('created_at', models.DateTimeField(auto_now_add=True, verbose_name='Received at')),
                ('transaction', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='webhook_logs', to='payments.transaction', verbose_name='Transaction')),
            ],
            options={
                'verbose_name': 'Stripe webhook',
                'verbose_name_plural': 'Stripe webhooks',
                'ordering': ('-created_at',),
            },
        ),
        migrations.AddIndex(
            model_name='transaction',
            index=models.Index(fields=['buyer', 'status'], name='transaction_buyer_status_idx'),
        ),
        migrations.AddIndex(
            model_name='transaction',
            index=models.Index(fields=['seller', 'status'], name='transaction_seller_status_idx'),
        ),
        migrations.AddIndex(
            model_name='transaction',
            index=models.Index(fields=['status', 'delivered_at'], name='transaction_release_idx'),
        ),
        migrations.AddIndex(
            model_name='transaction',
            index=models.Index(fields=['escrow_status'], name='transaction_escrow_idx'),
        ),
    ]

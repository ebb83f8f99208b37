from decimal import Decimal

from django.conf import settings
from django.db import migrations, models
import django.core.validators
import django.db.models.deletion


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name='Profile',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('bio', models.TextField(blank=True, null=True)),
                ('phone', models.CharField(blank=True, max_length=30, null=True)),
                ('location', models.CharField(blank=True, max_length=100, null=True)),
                ('profile_image', models.URLField(blank=True, max_length=500, null=True)),
                ('stripe_account_id', models.CharField(blank=True, max_length=100, null=True)),
                ('charges_enabled', models.BooleanField(default=False)),
                ('payouts_enabled', models.BooleanField(default=False)),
                ('details_submitted', models.BooleanField(default=False)),
                ('subscription_status', models.CharField(choices=[('none', 'No subscription'), ('active', 'Active'), ('cancelled', 'Cancelled')], default='none', max_length=20)),
                ('date', models.DateTimeField(auto_now_add=True)),
                ('date_update', models.DateTimeField(auto_now=True)),
                ('user', models.OneToOneField(on_delete=django.db.models.deletion.CASCADE, related_name='profile', to=settings.AUTH_USER_MODEL)),
            ],
        ),
        migrations.CreateModel(
            name='BabyItem',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('title', models.CharField(max_length=100, verbose_name='Title')),
                ('description', models.TextField(max_length=1000, verbose_name='Description')),
                ('price', models.DecimalField(decimal_places=2, max_digits=10, validators=[django.core.validators.MinValueValidator(Decimal('0'))], verbose_name='Price')),
                ('currency', models.CharField(default='USD', max_length=3, verbose_name='Currency')),
                ('category', models.CharField(choices=[('Clothing', 'Clothing'), ('Footwear', 'Footwear'), ('Toys', 'Toys'), ('Feeding', 'Feeding'), ('Diapering', 'Diapering'), ('Bathing', 'Bathing'), ('Nursery', 'Nursery'), ('Gear', 'Gear'), ('Strollers', 'Strollers'), ('Car Seats', 'Car Seats'), ('Health & Safety', 'Health & Safety'), ('Books', 'Books'), ('Other', 'Other')], max_length=30, verbose_name='Category')),
                ('age_group', models.CharField(blank=True, default='', max_length=30, verbose_name='Age group')),
                ('condition', models.CharField(choices=[('New', 'New'), ('Like New', 'Like New'), ('Good', 'Good'), ('Fair', 'Fair'), ('Poor', 'Poor')], default='Good', max_length=20, verbose_name='Condition')),
                ('status', models.CharField(choices=[('active', 'Active'), ('pending', 'Pending sale'), ('sold', 'Sold'), ('inactive', 'Inactive')], default='active', max_length=13, verbose_name='Status')),
                ('local_pickup', models.BooleanField(default=True, verbose_name='Local pickup')),
                ('shipping', models.BooleanField(default=False, verbose_name='Ships')),
                ('shipping_cost', models.DecimalField(decimal_places=2, default=Decimal('0'), max_digits=10, verbose_name='Shipping cost')),
                ('images', models.JSONField(blank=True, default=list, verbose_name='Image URLs')),
                ('created_at', models.DateTimeField(auto_now_add=True, verbose_name='Created')),
                ('updated_at', models.DateTimeField(auto_now=True, verbose_name='Updated')),
                ('seller', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='baby_items', to=settings.AUTH_USER_MODEL, verbose_name='Seller')),
            ],
            options={
                'verbose_name': 'Baby item',
                'verbose_name_plural': 'Baby items',
                'ordering': ('-created_at',),
            },
        ),
        migrations.AddIndex(
            model_name='babyitem',
            index=models.Index(fields=['status'], name='babyitem_status_idx'),
        ),
        migrations.AddIndex(
            model_name='babyitem',
            index=models.Index(fields=['seller', 'status'], name='babyitem_seller_status_idx'),
        ),
    ]

from django.apps import AppConfig


class HlsConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "hls"
    verbose_name = "HLS transcoding"

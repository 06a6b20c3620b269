"""URL declarations for the survey application.

Pages for both roles live here together with the JSON endpoints used by
client-side scripts.  Seller pages sit under ``seller/``, platform pages
under ``platform/`` and the JSON endpoints under ``api/``.
"""

from django.urls import path

from . import views

urlpatterns = [
    # Authentication
    path('login/', views.login_view, name='login'),
    path('logout/', views.logout_view, name='logout'),
    path('signup/', views.signup_view, name='signup'),
    path('forgot-password/', views.forgot_password_view, name='forgot_password'),
    # Path kept stable because it is e-mailed in reset links
    path('reset-password/', views.reset_password_view, name='reset_password'),
    # Role dispatch
    path('', views.home, name='home'),
    # Seller pages
    path('seller/', views.seller_home, name='seller_home'),
    path('seller/index/', views.seller_index, name='seller_index'),
    path('seller/index/results/', views.seller_results, name='seller_results'),
    path('seller/index/<str:step_key>/', views.seller_step, name='seller_step'),
    path('seller/assessment/', views.seller_assessment, name='seller_assessment'),
    # Platform pages
    path('platform/', views.platform_sellers, name='platform_sellers'),
    path('platform/sellers/<int:seller_id>/', views.platform_seller_detail, name='platform_seller_detail'),
    path(
        'platform/sellers/<int:seller_id>/received-return/',
        views.platform_set_received_return,
        name='platform_set_received_return',
    ),
    path(
        'platform/sellers/<int:seller_id>/visibility/',
        views.platform_set_card_visibility,
        name='platform_set_card_visibility',
    ),
    # Exports
    path(
        'platform/sellers/<int:seller_id>/answers.csv',
        views.platform_export_answers,
        name='platform_export_answers',
    ),
    path(
        'platform/sellers/<int:seller_id>/assessment.csv',
        views.platform_export_assessment,
        name='platform_export_assessment',
    ),
    # JSON API: seller
    path('api/steps/<str:step_key>/', views.api_step, name='api_step'),
    path('api/results/', views.api_results, name='api_results'),
    path('api/results/reached/', views.api_mark_reached_results, name='api_mark_reached_results'),
    path('api/assessment/', views.api_assessment, name='api_assessment'),
    path('api/assessment/draft/', views.api_assessment_draft, name='api_assessment_draft'),
    path('api/assessment/submit/', views.api_assessment_submit, name='api_assessment_submit'),
    # JSON API: platform
    path('api/platform/sellers/', views.api_platform_sellers, name='api_platform_sellers'),
    path('api/platform/sellers/<int:seller_id>/', views.api_platform_seller, name='api_platform_seller'),
    path(
        'api/platform/sellers/<int:seller_id>/received-return/',
        views.api_platform_received_return,
        name='api_platform_received_return',
    ),
    path(
        'api/platform/sellers/<int:seller_id>/visibility/',
        views.api_platform_card_visibility,
        name='api_platform_card_visibility',
    ),
]

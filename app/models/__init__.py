from app.models.user import User
from app.models.customer import Customer
from app.models.sales import Sale

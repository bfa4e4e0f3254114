"Object models shared by unit tests."

from pysqlderive.model.elements import ElementKind, Model, PrimitiveTypes


def department_employees() -> Model:
    "A department with a list of employees, the employees do not navigate back to the department."

    model = Model("company")
    department = model.create_type("Department", id="Department")
    employee = model.create_type("Employee", id="Employee")

    department.add_attribute("Id", PrimitiveTypes.integer, is_id=True)
    department.add_attribute("Name", PrimitiveTypes.string)
    department.add_attribute("Employees", employee, lower=0, upper=None)

    employee.add_attribute("Id", PrimitiveTypes.integer, is_id=True)
    employee.add_attribute("Name", PrimitiveTypes.string)
    return model


def department_guid_employees() -> Model:
    "A department with a list of employees, employees are identified by a globally unique identifier."

    model = Model("company")
    department = model.create_type("Department", id="Department")
    employee = model.create_type("Employee", id="Employee")

    department.add_attribute("Id", PrimitiveTypes.integer, is_id=True)
    department.add_attribute("Employees", employee, lower=0, upper=None)

    employee.add_attribute("Id", PrimitiveTypes.uuid, is_id=True)
    employee.add_attribute("Name", PrimitiveTypes.string)
    return model


def department_employees_association() -> Model:
    """
    A department with a list of employees expressed as an association.

    The end `Employees` is a navigable attribute of `Department`, the opposite end is owned by the association.
    """

    model = Model("company")
    department = model.create_type("Department", id="Department")
    employee = model.create_type("Employee", id="Employee")

    department.add_attribute("Id", PrimitiveTypes.integer, is_id=True)
    department.add_attribute("Name", PrimitiveTypes.string)
    employees = department.add_attribute("Employees", employee, lower=0, upper=None)

    employee.add_attribute("Id", PrimitiveTypes.integer, is_id=True)
    employee.add_attribute("Name", PrimitiveTypes.string)

    association = model.create_association("DepartmentEmployees", id="A1")
    association.add_member_end(employees)
    association.create_owned_end("Department", department)
    return model


def department_employees_bidirectional() -> Model:
    "A department with a list of employees, each employee navigates back to its department."

    model = Model("company")
    department = model.create_type("Department", id="Department")
    employee = model.create_type("Employee", id="Employee")

    department.add_attribute("Id", PrimitiveTypes.integer, is_id=True)
    employees = department.add_attribute("Employees", employee, lower=0, upper=None)

    employee.add_attribute("Id", PrimitiveTypes.integer, is_id=True)
    employer = employee.add_attribute("Department", department)

    association = model.create_association("DepartmentEmployees", id="A1")
    association.add_member_end(employees)
    association.add_member_end(employer)
    return model


def person_addresses() -> Model:
    "A person with two single-valued references to the same type."

    model = Model("contacts")
    person = model.create_type("Person", id="Person")
    address = model.create_type("Address", id="Address")

    person.add_attribute("Id", PrimitiveTypes.integer, is_id=True)
    person.add_attribute("Name", PrimitiveTypes.string, max_length=100)
    person.add_attribute("homeAddress", address)
    person.add_attribute("workAddress", address, lower=0)

    address.add_attribute("Id", PrimitiveTypes.integer, is_id=True)
    address.add_attribute("Street", PrimitiveTypes.string)
    return model


def value_types() -> Model:
    "An entity with attributes of enumeration and data types."

    model = Model("catalog")
    status = model.create_type(
        "Status", ElementKind.ENUMERATION, base_type=PrimitiveTypes.byte, id="Status"
    )
    money = model.create_type("Money", ElementKind.DATA_TYPE, id="Money")
    money.add_attribute("Amount", PrimitiveTypes.decimal)
    money.add_attribute("Currency", PrimitiveTypes.string, max_length=3)

    product = model.create_type("Product", id="Product")
    product.add_attribute("Id", PrimitiveTypes.uuid, is_id=True)
    product.add_attribute("Status", status)
    product.add_attribute("Price", PrimitiveTypes.decimal, precision=10, scale=4)
    product.add_attribute("Weight", PrimitiveTypes.decimal, lower=0)
    product.add_attribute("Available", PrimitiveTypes.boolean)
    return model


def cyclic() -> Model:
    "Two types that reference one another with single-valued attributes."

    model = Model("cyclic")
    first = model.create_type("First", id="First")
    second = model.create_type("Second", id="Second")

    first.add_attribute("Id", PrimitiveTypes.integer, is_id=True)
    first.add_attribute("second", second)
    second.add_attribute("Id", PrimitiveTypes.integer, is_id=True)
    second.add_attribute("first", first)
    return model


def self_reference() -> Model:
    "A type that references itself."

    model = Model("hierarchy")
    employee = model.create_type("Employee", id="Employee")
    employee.add_attribute("Id", PrimitiveTypes.integer, is_id=True)
    employee.add_attribute("manager", employee, lower=0)
    return model


def missing_identity() -> Model:
    "A reference to a type without an identity property."

    model = Model("broken")
    department = model.create_type("Department", id="Department")
    department.add_attribute("Name", PrimitiveTypes.string)

    employee = model.create_type("Employee", id="Employee")
    employee.add_attribute("Id", PrimitiveTypes.integer, is_id=True)
    employee.add_attribute("department", department)
    return model


def chain() -> Model:
    "Types declared in reverse dependency order: `Order` references `Customer` references `Country`."

    model = Model("shop")
    order = model.create_type("Order", id="Order")
    customer = model.create_type("Customer", id="Customer")
    country = model.create_type("Country", id="Country")

    order.add_attribute("Id", PrimitiveTypes.integer, is_id=True)
    order.add_attribute("customer", customer)
    customer.add_attribute("Id", PrimitiveTypes.integer, is_id=True)
    customer.add_attribute("country", country)
    country.add_attribute("Id", PrimitiveTypes.integer, is_id=True)
    country.add_attribute("Name", PrimitiveTypes.string)
    return model
